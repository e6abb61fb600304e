"""Workspace-related exceptions."""

from fastapi import HTTPException, status


class WorkspaceException(HTTPException):
    """Base workspace exception."""

    def __init__(self, detail: str = "Workspace operation failed", status_code: int = status.HTTP_400_BAD_REQUEST):
        super().__init__(status_code=status_code, detail=detail)


class WorkspaceNotFound(WorkspaceException):
    def __init__(self):
        super().__init__(detail="Workspace not found", status_code=status.HTTP_404_NOT_FOUND)


class WorkspaceMemberNotFound(WorkspaceException):
    def __init__(self):
        super().__init__(detail="Member not found", status_code=status.HTTP_404_NOT_FOUND)


class WorkspaceMemberAlreadyExists(WorkspaceException):
    def __init__(self):
        super().__init__(detail="User is already a member of this workspace", status_code=status.HTTP_409_CONFLICT)


class CannotModifyWorkspaceOwner(WorkspaceException):
    """Raised when a mutation targets the owner's own membership."""

    def __init__(self):
        super().__init__(detail="The workspace owner's membership cannot be changed or removed")
