"""Project-related exceptions."""

from fastapi import HTTPException, status


class ProjectException(HTTPException):
    """Base project exception."""

    def __init__(self, detail: str = "Project operation failed", status_code: int = status.HTTP_400_BAD_REQUEST):
        super().__init__(status_code=status_code, detail=detail)


class ProjectNotFound(ProjectException):
    def __init__(self):
        super().__init__(detail="Project not found", status_code=status.HTTP_404_NOT_FOUND)


class ProjectMemberNotFound(ProjectException):
    def __init__(self):
        super().__init__(detail="Member not found", status_code=status.HTTP_404_NOT_FOUND)


class ProjectMemberAlreadyExists(ProjectException):
    def __init__(self):
        super().__init__(detail="User is already a member of this project", status_code=status.HTTP_409_CONFLICT)


class NotAWorkspaceMember(ProjectException):
    """Raised when adding a project member who does not belong to the project's workspace."""

    def __init__(self):
        super().__init__(detail="User is not a member of the project's workspace")
