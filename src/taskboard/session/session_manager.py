"""Authenticated-session state machine."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from taskboard.api.models import OperationResult, ProfileUpdate, UserProfile
from taskboard.errors import TaskboardError, Unauthenticated
from taskboard.remote.task_service import TaskService
from taskboard.session import validation
from taskboard.session.credential_store import CredentialStore
from taskboard.websocket.connection_manager import Notifier

logger = logging.getLogger(__name__)


class SessionStatus(str, Enum):
    """Lifecycle of the client session."""

    UNINITIALIZED = "uninitialized"
    RESOLVING = "resolving"
    AUTHENTICATED = "authenticated"
    ANONYMOUS = "anonymous"


@dataclass
class Session:
    """Who is signed in. `user` is set exactly when status is AUTHENTICATED."""

    status: SessionStatus = SessionStatus.UNINITIALIZED
    user: UserProfile | None = None
    token: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.status is SessionStatus.AUTHENTICATED


class SessionManager:
    """Owns the Session and every transition between its states."""

    def __init__(
        self,
        service: TaskService,
        credential_store: CredentialStore,
        notifier: Notifier,
    ) -> None:
        """Initialize manager in the UNINITIALIZED state.

        Args:
            service: Remote auth endpoints
            credential_store: Where the bearer token is persisted
            notifier: User-visible message channel
        """
        self.session = Session()
        self._service = service
        self._credentials = credential_store
        self._notifier = notifier
        self._logout_callbacks: list[Callable[[], None]] = []
        # Bumped on every sign-in/sign-out so late responses can detect a stale session
        self._generation = 0

    def add_logout_callback(self, callback: Callable[[], None]) -> None:
        """Register a callback run after every transition into ANONYMOUS via logout."""
        self._logout_callbacks.append(callback)

    def require_authenticated(self) -> UserProfile:
        """Guard for protected operations.

        Raises:
            Unauthenticated: Session is not AUTHENTICATED (no request is made)
        """
        if not self.session.is_authenticated or self.session.user is None:
            raise Unauthenticated()
        return self.session.user

    async def start(self) -> Session:
        """Resolve the session from a stored token, if there is one.

        Any failure of the "who am I" call (expired token, network, server)
        ends in ANONYMOUS with the stored token cleared.
        """
        if self.session.status is not SessionStatus.UNINITIALIZED:
            logger.debug(f"[SessionManager] Already started ({self.session.status.value})")
            return self.session

        token = self._credentials.get()
        if not token:
            logger.info("[SessionManager] No stored token")
            self._become_anonymous()
            return self.session

        self.session.status = SessionStatus.RESOLVING
        generation = self._generation
        logger.info("[SessionManager] Resolving stored token")
        try:
            user = await self._service.me()
        except Exception as e:
            if generation != self._generation:
                logger.info("[SessionManager] Session changed while resolving, ignoring failure")
                return self.session
            logger.info(f"[SessionManager] Stored token rejected, signing out: {e}")
            self._credentials.clear()
            self._become_anonymous()
            return self.session

        if generation != self._generation:
            logger.info("[SessionManager] Logged out while resolving, ignoring stored token")
            return self.session

        self._become_authenticated(user, token)
        return self.session

    async def login(self, email: str, password: str) -> OperationResult:
        """Sign in with email and password."""
        if self.session.status is not SessionStatus.ANONYMOUS:
            return self._rejected("login")

        try:
            validation.validate_login(email, password)
            result = await self._service.login(email, password)
        except TaskboardError as e:
            return self._failed("login", e, "Login failed")

        self._credentials.set(result.token)
        self._become_authenticated(result.user, result.token)
        return self._succeeded("Login successful!")

    async def register(
        self, name: str, email: str, password: str, confirm_password: str | None = None
    ) -> OperationResult:
        """Create an account; success signs the new user in."""
        if self.session.status is not SessionStatus.ANONYMOUS:
            return self._rejected("register")

        try:
            validation.validate_registration(name, email, password, confirm_password)
            result = await self._service.register(name, email, password)
        except TaskboardError as e:
            return self._failed("register", e, "Registration failed")

        self._credentials.set(result.token)
        self._become_authenticated(result.user, result.token)
        return self._succeeded("Registration successful!")

    def logout(self) -> OperationResult:
        """Sign out locally. Always succeeds, no request is made."""
        was_authenticated = self.session.is_authenticated
        self._credentials.clear()
        self._become_anonymous()

        if was_authenticated:
            for callback in self._logout_callbacks:
                try:
                    callback()
                except Exception as e:
                    logger.error(f"[SessionManager] Logout callback error: {e}", exc_info=True)

        return self._succeeded("Logged out successfully")

    async def update_profile(self, fields: ProfileUpdate) -> OperationResult:
        """Update name and/or email; success replaces the cached profile."""
        self.require_authenticated()
        generation = self._generation

        try:
            validation.validate_profile(fields.name, fields.email)
            user = await self._service.update_profile(fields)
        except TaskboardError as e:
            return self._failed("update_profile", e, "Profile update failed")

        if generation != self._generation:
            logger.info("[SessionManager] Session changed during profile update, ignoring result")
            return OperationResult.failed(Unauthenticated())

        self.session.user = user
        return self._succeeded("Profile updated successfully")

    async def change_password(
        self, current_password: str, new_password: str, confirm_password: str | None = None
    ) -> OperationResult:
        """Change password; a token returned by the server replaces the stored one."""
        self.require_authenticated()
        generation = self._generation

        try:
            validation.validate_password_change(current_password, new_password, confirm_password)
            token = await self._service.change_password(current_password, new_password)
        except TaskboardError as e:
            return self._failed("change_password", e, "Password change failed")

        if generation != self._generation:
            logger.info("[SessionManager] Session changed during password change, keeping token")
            return OperationResult.failed(Unauthenticated())

        if token:
            self._credentials.set(token)
            self.session.token = token
        return self._succeeded("Password changed successfully")

    def _become_authenticated(self, user: UserProfile, token: str) -> None:
        self._generation += 1
        self.session.status = SessionStatus.AUTHENTICATED
        self.session.user = user
        self.session.token = token
        logger.info(f"[SessionManager] Authenticated as user {user.id}")

    def _become_anonymous(self) -> None:
        previous = self.session.status
        self._generation += 1
        self.session.status = SessionStatus.ANONYMOUS
        self.session.user = None
        self.session.token = None
        if previous is not SessionStatus.ANONYMOUS:
            logger.info(f"[SessionManager] {previous.value} -> anonymous")

    def _rejected(self, operation: str) -> OperationResult:
        logger.warning(
            f"[SessionManager] {operation} not allowed while {self.session.status.value}"
        )
        state = self.session.status.value
        return OperationResult.failed(
            TaskboardError(f"Cannot {operation} while {state}", status_code=409)
        )

    def _succeeded(self, message: str) -> OperationResult:
        self._notifier.notify("success", message)
        return OperationResult.ok(message)

    def _failed(self, operation: str, error: TaskboardError, fallback: str) -> OperationResult:
        result = OperationResult.failed(error, fallback)
        logger.warning(f"[SessionManager] {operation} failed: {result.message}")
        self._notifier.notify("error", result.message or fallback)
        return result
