"""Test fixtures for Taskboard."""

import asyncio
from collections import Counter
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
import pytest_asyncio

from taskboard.api.models import (
    AuthResult,
    ProfileUpdate,
    StatsSnapshot,
    Task,
    TaskDraft,
    TaskPatch,
    UserProfile,
)
from taskboard.errors import NotFoundFailure
from taskboard.session.credential_store import MemoryCredentialStore
from taskboard.session.session_manager import SessionManager
from taskboard.tasks.stats import StatsAggregator
from taskboard.tasks.task_cache import TaskCacheController

BASE_TIME = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)

TaskFactory = Callable[..., Task]


def build_task(task_id: str, title: str | None = None, **fields: Any) -> Task:
    """Task with deterministic timestamps; extra fields override defaults."""
    data: dict[str, Any] = {
        "id": task_id,
        "title": title or f"Task {task_id}",
        "status": "pending",
        "priority": "medium",
        "created_at": BASE_TIME,
        "updated_at": BASE_TIME,
    }
    data.update(fields)
    return Task(**data)


class FakeTaskService:
    """In-memory remote task service.

    `server_tasks` is the full server-side set (drives stats); `list_result`
    is what GET /tasks returns unless `search_results` has an entry for the
    search term. Setting a `*_error` makes that call raise it. With
    `hold_me`/`hold_lists`/`hold_updates`/`hold_stats`, calls wait on a future
    the test resolves, to control response order.
    """

    def __init__(self) -> None:
        self.user = UserProfile(id="u1", name="Ada Lovelace", email="ada@example.com")
        self.token = "token-1"
        self.new_token: str | None = "token-2"
        self.server_tasks: dict[str, Task] = {}
        self.list_result: list[Task] = []
        self.search_results: dict[str, list[Task]] = {}
        self.calls: list[tuple[str, Any]] = []

        self.login_error: Exception | None = None
        self.register_error: Exception | None = None
        self.me_error: Exception | None = None
        self.profile_error: Exception | None = None
        self.password_error: Exception | None = None
        self.list_error: Exception | None = None
        self.stats_error: Exception | None = None
        self.create_error: Exception | None = None
        self.update_error: Exception | None = None
        self.delete_error: Exception | None = None

        self.hold_me = False
        self.held_me: list[asyncio.Future[None]] = []
        self.hold_lists = False
        self.held_lists: list[asyncio.Future[list[Task]]] = []
        self.hold_updates = False
        self.held_updates: list[asyncio.Future[None]] = []
        self.hold_stats = False
        self.held_stats: list[asyncio.Future[StatsSnapshot]] = []
        self._next_id = 100

    def seed(self, *tasks: Task) -> None:
        """Put tasks on the server and make them the default list result."""
        for task in tasks:
            self.server_tasks[task.id] = task
        self.list_result = list(tasks)

    def calls_to(self, name: str) -> list[Any]:
        return [args for call, args in self.calls if call == name]

    async def login(self, email: str, password: str) -> AuthResult:
        self.calls.append(("login", (email, password)))
        if self.login_error:
            raise self.login_error
        return AuthResult(token=self.token, user=self.user)

    async def register(self, name: str, email: str, password: str) -> AuthResult:
        self.calls.append(("register", (name, email, password)))
        if self.register_error:
            raise self.register_error
        self.user = UserProfile(id="u2", name=name, email=email)
        return AuthResult(token=self.token, user=self.user)

    async def me(self) -> UserProfile:
        self.calls.append(("me", None))
        if self.hold_me:
            future: asyncio.Future[None] = asyncio.get_running_loop().create_future()
            self.held_me.append(future)
            await future
        if self.me_error:
            raise self.me_error
        return self.user

    async def update_profile(self, fields: ProfileUpdate) -> UserProfile:
        self.calls.append(("update_profile", fields))
        if self.profile_error:
            raise self.profile_error
        self.user = self.user.model_copy(update=fields.model_dump(exclude_unset=True))
        return self.user

    async def change_password(self, current_password: str, new_password: str) -> str | None:
        self.calls.append(("change_password", (current_password, new_password)))
        if self.password_error:
            raise self.password_error
        return self.new_token

    async def list_tasks(self, params: dict[str, str]) -> list[Task]:
        self.calls.append(("list_tasks", dict(params)))
        if self.list_error:
            raise self.list_error
        if self.hold_lists:
            future: asyncio.Future[list[Task]] = asyncio.get_running_loop().create_future()
            self.held_lists.append(future)
            return await future
        return list(self.search_results.get(params.get("search", ""), self.list_result))

    async def get_stats(self) -> StatsSnapshot:
        self.calls.append(("get_stats", None))
        if self.stats_error:
            raise self.stats_error
        if self.hold_stats:
            future: asyncio.Future[StatsSnapshot] = asyncio.get_running_loop().create_future()
            self.held_stats.append(future)
            return await future
        tasks = list(self.server_tasks.values())
        return StatsSnapshot(
            total=len(tasks),
            by_status=dict(Counter(t.status for t in tasks)),
            by_priority=dict(Counter(t.priority for t in tasks)),
        )

    async def create_task(self, draft: TaskDraft) -> Task:
        self.calls.append(("create_task", draft))
        if self.create_error:
            raise self.create_error
        self._next_id += 1
        fields = draft.model_dump(exclude_none=True)
        task = build_task(f"t{self._next_id}", **fields)
        self.server_tasks[task.id] = task
        return task

    async def update_task(self, task_id: str, patch: TaskPatch) -> Task:
        self.calls.append(("update_task", (task_id, patch)))
        if self.hold_updates:
            future: asyncio.Future[None] = asyncio.get_running_loop().create_future()
            self.held_updates.append(future)
            await future
        if self.update_error:
            raise self.update_error
        if task_id not in self.server_tasks:
            raise NotFoundFailure("Task not found", status_code=404)
        changes = patch.model_dump(exclude_unset=True)
        changes["updated_at"] = BASE_TIME + timedelta(hours=1)
        task = self.server_tasks[task_id].model_copy(update=changes)
        self.server_tasks[task_id] = task
        return task

    async def delete_task(self, task_id: str) -> None:
        self.calls.append(("delete_task", task_id))
        if self.delete_error:
            raise self.delete_error
        if self.server_tasks.pop(task_id, None) is None:
            raise NotFoundFailure("Task not found", status_code=404)


class RecordingNotifier:
    """Notifier that keeps every message."""

    def __init__(self) -> None:
        self.messages: list[tuple[str, str]] = []

    def notify(self, level: str, message: str) -> None:
        self.messages.append((level, message))

    @property
    def errors(self) -> list[str]:
        return [message for level, message in self.messages if level == "error"]

    @property
    def successes(self) -> list[str]:
        return [message for level, message in self.messages if level == "success"]


class ScriptedConfirmation:
    """Confirmation prompt with a fixed answer that records each question."""

    def __init__(self, answer: bool = True) -> None:
        self.answer = answer
        self.asked: list[str] = []

    async def confirm(self, message: str) -> bool:
        self.asked.append(message)
        return self.answer


@pytest.fixture
def make_task() -> TaskFactory:
    """Factory for Task objects."""
    return build_task


@pytest.fixture
def service() -> FakeTaskService:
    """Fake remote task service."""
    return FakeTaskService()


@pytest.fixture
def credential_store() -> MemoryCredentialStore:
    """Empty in-memory credential store."""
    return MemoryCredentialStore()


@pytest.fixture
def notifier() -> RecordingNotifier:
    """Notifier that records messages."""
    return RecordingNotifier()


@pytest.fixture
def confirmation() -> ScriptedConfirmation:
    """Confirmation prompt that says yes."""
    return ScriptedConfirmation(True)


@pytest.fixture
def session_manager(
    service: FakeTaskService,
    credential_store: MemoryCredentialStore,
    notifier: RecordingNotifier,
) -> SessionManager:
    """Session manager in the UNINITIALIZED state."""
    return SessionManager(service, credential_store, notifier)


@pytest.fixture
def controller(
    service: FakeTaskService,
    session_manager: SessionManager,
    notifier: RecordingNotifier,
    confirmation: ScriptedConfirmation,
) -> TaskCacheController:
    """Task cache controller with a short search debounce."""
    controller = TaskCacheController(
        service,
        session_manager,
        StatsAggregator(service),
        notifier,
        confirmation,
        search_debounce=0.05,
    )
    session_manager.add_logout_callback(controller.reset)
    return controller


@pytest_asyncio.fixture
async def signed_in(
    session_manager: SessionManager, credential_store: MemoryCredentialStore
) -> SessionManager:
    """Session manager resolved from a stored token into AUTHENTICATED."""
    credential_store.set("token-1")
    await session_manager.start()
    assert session_manager.session.is_authenticated
    return session_manager
