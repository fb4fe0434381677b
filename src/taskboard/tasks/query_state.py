"""Search, filter and sort parameters for task reloads."""

from dataclasses import dataclass

from taskboard.api.models import SortField, SortOrder, TaskPriority, TaskStatus


@dataclass
class QueryState:
    """Current query. Values are sent to the service verbatim; nothing is filtered locally."""

    search_term: str = ""
    status_filter: TaskStatus | None = None
    priority_filter: TaskPriority | None = None
    sort_by: SortField = "createdAt"
    sort_order: SortOrder = "desc"

    def set_search_term(self, term: str) -> None:
        self.search_term = term

    def set_status_filter(self, status: TaskStatus | None) -> None:
        self.status_filter = status

    def set_priority_filter(self, priority: TaskPriority | None) -> None:
        self.priority_filter = priority

    def set_sort_by(self, field: SortField) -> None:
        self.sort_by = field

    def set_sort_order(self, order: SortOrder) -> None:
        self.sort_order = order

    def reset(self) -> None:
        """Back to defaults: no search, no filters, newest first."""
        defaults = QueryState()
        self.search_term = defaults.search_term
        self.status_filter = defaults.status_filter
        self.priority_filter = defaults.priority_filter
        self.sort_by = defaults.sort_by
        self.sort_order = defaults.sort_order

    def to_params(self) -> dict[str, str]:
        """Query-string parameters for GET /tasks; empty values are omitted."""
        params: dict[str, str] = {}
        if self.search_term:
            params["search"] = self.search_term
        if self.status_filter:
            params["status"] = self.status_filter
        if self.priority_filter:
            params["priority"] = self.priority_filter
        if self.sort_by:
            params["sortBy"] = self.sort_by
        if self.sort_order:
            params["sortOrder"] = self.sort_order
        return params
