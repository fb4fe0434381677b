"""Session API endpoints."""

import logging

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from taskboard.api.models import ProfileUpdate, UserProfile, WireModel
from taskboard.api.responses import raise_for_result
from taskboard.errors import Unauthenticated
from taskboard.factory import get_session_manager, get_task_controller
from taskboard.session.session_manager import SessionManager

logger = logging.getLogger(__name__)

router = APIRouter()


class SessionResponse(BaseModel):
    """API response model for the current session."""

    status: str
    user: UserProfile | None


class LoginRequest(BaseModel):
    """Request model for signing in."""

    email: str
    password: str


class RegisterRequest(WireModel):
    """Request model for creating an account."""

    name: str
    email: str
    password: str
    confirm_password: str | None = None


class ChangePasswordRequest(WireModel):
    """Request model for changing the password."""

    current_password: str
    new_password: str
    confirm_password: str | None = None


def _session_response(manager: SessionManager) -> SessionResponse:
    session = manager.session
    return SessionResponse(status=session.status.value, user=session.user)


async def _load_after_sign_in() -> None:
    """Initial task and stats load once a user is signed in."""
    controller = get_task_controller()
    await controller.load()


@router.get("/session", response_model=SessionResponse)
async def get_session() -> SessionResponse:
    """Current session status and user.

    Returns:
        Session status (uninitialized, resolving, authenticated, anonymous) and profile
    """
    return _session_response(get_session_manager())


@router.post("/auth/login", response_model=SessionResponse)
async def login(request: LoginRequest) -> SessionResponse:
    """Sign in and load the user's tasks.

    Raises:
        HTTPException: 401 bad credentials, 409 already signed in, 422 invalid form
    """
    manager = get_session_manager()
    result = await manager.login(request.email, request.password)
    raise_for_result(result)

    await _load_after_sign_in()
    return _session_response(manager)


@router.post("/auth/register", response_model=SessionResponse)
async def register(request: RegisterRequest) -> SessionResponse:
    """Create an account, sign in and load tasks."""
    manager = get_session_manager()
    result = await manager.register(
        request.name, request.email, request.password, request.confirm_password
    )
    raise_for_result(result)

    await _load_after_sign_in()
    return _session_response(manager)


@router.post("/auth/logout", response_model=SessionResponse)
async def logout() -> SessionResponse:
    """Sign out locally; always succeeds."""
    manager = get_session_manager()
    manager.logout()
    return _session_response(manager)


@router.put("/auth/profile", response_model=SessionResponse)
async def update_profile(request: ProfileUpdate) -> SessionResponse:
    """Update name and/or email.

    Raises:
        HTTPException: 401 not signed in, 422 invalid fields, 502 service unavailable
    """
    manager = get_session_manager()
    try:
        result = await manager.update_profile(request)
    except Unauthenticated as e:
        raise HTTPException(status_code=401, detail=e.message) from e
    raise_for_result(result)
    return _session_response(manager)


@router.put("/auth/change-password")
async def change_password(request: ChangePasswordRequest) -> dict[str, str]:
    """Change the password; a new token from the service replaces the stored one."""
    manager = get_session_manager()
    try:
        result = await manager.change_password(
            request.current_password, request.new_password, request.confirm_password
        )
    except Unauthenticated as e:
        raise HTTPException(status_code=401, detail=e.message) from e
    raise_for_result(result)
    return {"status": "success", "message": result.message or ""}
