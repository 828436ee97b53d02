"""Exceptions raised by the persistence and session layers."""


class PlanchatError(Exception):
    """Base class for planchat errors."""


class NotAuthenticatedError(PlanchatError):
    """Raised when a store operation runs without a signed-in user."""

    def __init__(self, message: str = "로그인이 필요합니다.") -> None:
        super().__init__(message)


class TaskNotFoundError(PlanchatError):
    """Raised when a task id does not exist in the store."""

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task not found: {task_id}")
        self.task_id = task_id
