"""Task-related exceptions."""

from fastapi import HTTPException, status


class TaskException(HTTPException):
    """Base task exception."""

    def __init__(self, detail: str = "Task operation failed", status_code: int = status.HTTP_400_BAD_REQUEST):
        super().__init__(status_code=status_code, detail=detail)


class TaskNotFound(TaskException):
    def __init__(self):
        super().__init__(detail="Task not found", status_code=status.HTTP_404_NOT_FOUND)


class AssigneeNotFound(TaskException):
    def __init__(self):
        super().__init__(detail="Assignee not found", status_code=status.HTTP_404_NOT_FOUND)


class AssigneeAlreadyExists(TaskException):
    def __init__(self):
        super().__init__(detail="User is already assigned to this task", status_code=status.HTTP_409_CONFLICT)


class AssigneeNotProjectMember(TaskException):
    """Raised when assigning a user who has no membership on the task's project."""

    def __init__(self):
        super().__init__(detail="Assignee must be a member of the task's project")
