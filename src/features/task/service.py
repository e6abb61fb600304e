"""Task service layer.

Every read and every mutation requires a membership on the task's project.
Notifications are written in the same transaction as the change they report.
"""

import logging
from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.features.auth.permissions import is_project_member, require_project_member, require_task_member
from src.features.notification.service import NotificationService
from src.features.project.models import Project
from src.features.user.service import UserService

from .exceptions import AssigneeAlreadyExists, AssigneeNotFound, AssigneeNotProjectMember
from .models import Task, TaskAssignee, TaskPriority, TaskStatus

logger = logging.getLogger(__name__)


def _with_assignees(stmt):
    return stmt.options(selectinload(Task.assignees).selectinload(TaskAssignee.user)).execution_options(
        populate_existing=True
    )


class TaskService:
    """Service for tasks and task assignments."""

    @staticmethod
    async def load_task(session: AsyncSession, task_id: int) -> Task | None:
        """Fetch a task with its assignees for serialization."""
        stmt = _with_assignees(select(Task).where(Task.id == task_id))
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def _project_name(session: AsyncSession, project_id: int) -> str:
        result = await session.execute(select(Project.name).where(Project.id == project_id))
        return result.scalar_one()

    @staticmethod
    async def _ensure_assignable(session: AsyncSession, project_id: int, user_id: int) -> None:
        await UserService.get_user_or_404(session, user_id)
        if not await is_project_member(session, project_id, user_id):
            raise AssigneeNotProjectMember()

    @staticmethod
    async def _assign(session: AsyncSession, task: Task, user_id: int) -> TaskAssignee:
        assignee = TaskAssignee(task_id=task.id, user_id=user_id)
        session.add(assignee)
        try:
            await session.flush()
        except IntegrityError as err:
            raise AssigneeAlreadyExists() from err

        project_name = await TaskService._project_name(session, task.project_id)
        await NotificationService.notify(
            session,
            recipient_id=user_id,
            title=f"New Task Assigned: {task.title}",
            body=f'You have been assigned to task "{task.title}" in project "{project_name}"',
            related_task_id=task.id,
        )
        return assignee

    @staticmethod
    async def create_task(
        session: AsyncSession,
        actor_id: int,
        project_id: int,
        title: str,
        description: str | None = None,
        priority: TaskPriority = TaskPriority.MEDIUM,
        due_date: datetime | None = None,
        assignee_id: int | None = None,
    ) -> Task:
        """Create a task (project members only), optionally assigning a project member.

        Raises:
            ProjectNotFound: If the project does not exist
            InsufficientPermissionsException: If the actor is not a project member
            UserNotFound: If the assignee does not exist
            AssigneeNotProjectMember: If the assignee is not a project member

        """
        await require_project_member(session, project_id, actor_id)
        if assignee_id is not None:
            await TaskService._ensure_assignable(session, project_id, assignee_id)

        task = Task(
            title=title,
            description=description,
            status=TaskStatus.TODO.value,
            priority=priority.value,
            due_date=due_date,
            project_id=project_id,
        )
        session.add(task)
        await session.flush()

        if assignee_id is not None:
            await TaskService._assign(session, task, assignee_id)

        logger.info(f"Task {task.id} created in project {project_id} by user {actor_id}")
        return await TaskService.load_task(session, task.id)

    @staticmethod
    async def get_task(session: AsyncSession, task_id: int, user_id: int) -> Task:
        await require_task_member(session, task_id, user_id)
        return await TaskService.load_task(session, task_id)

    @staticmethod
    async def get_task_for_subscriber(session: AsyncSession, task_id: int, user_id: int) -> Task | None:
        """Return the task if the user may currently see it, else None."""
        task = await TaskService.load_task(session, task_id)
        if task is None or not await is_project_member(session, task.project_id, user_id):
            return None
        return task

    @staticmethod
    async def list_by_status(
        session: AsyncSession, project_id: int, user_id: int, status: TaskStatus | None = None
    ) -> list[Task]:
        """List a project's tasks, optionally filtered by status (project members only)."""
        await require_project_member(session, project_id, user_id)
        stmt = select(Task).where(Task.project_id == project_id)
        if status is not None:
            stmt = stmt.where(Task.status == status.value)
        stmt = _with_assignees(stmt.order_by(Task.created_at.desc(), Task.id.desc()))
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def list_for_user(session: AsyncSession, user_id: int) -> list[Task]:
        """List the tasks assigned to a user, newest first."""
        assigned = select(TaskAssignee.task_id).where(TaskAssignee.user_id == user_id)
        stmt = _with_assignees(
            select(Task).where(Task.id.in_(assigned)).order_by(Task.created_at.desc(), Task.id.desc())
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def update_status(session: AsyncSession, task_id: int, actor_id: int, status: TaskStatus) -> Task:
        """Change a task's status and notify every assignee except the actor.

        Raises:
            TaskNotFound: If the task does not exist
            InsufficientPermissionsException: If the actor is not a project member

        """
        await require_task_member(session, task_id, actor_id)
        task = await TaskService.load_task(session, task_id)

        task.status = status.value
        await session.flush()

        project_name = await TaskService._project_name(session, task.project_id)
        for assignee in task.assignees:
            if assignee.user_id == actor_id:
                continue
            await NotificationService.notify(
                session,
                recipient_id=assignee.user_id,
                title=f"Task Updated: {task.title}",
                body=f'The status of task "{task.title}" in project "{project_name}" is now "{status}"',
                related_task_id=task.id,
            )

        logger.info(f"Task {task.id} status set to {status} by user {actor_id}")
        return await TaskService.load_task(session, task.id)

    @staticmethod
    async def assign(session: AsyncSession, task_id: int, actor_id: int, user_id: int) -> TaskAssignee:
        """Assign a project member to a task and notify them.

        Raises:
            TaskNotFound: If the task does not exist
            InsufficientPermissionsException: If the actor is not a project member
            UserNotFound: If the assignee does not exist
            AssigneeNotProjectMember: If the assignee is not a project member
            AssigneeAlreadyExists: If the user is already assigned

        """
        task = await require_task_member(session, task_id, actor_id)
        await TaskService._ensure_assignable(session, task.project_id, user_id)

        stmt = select(TaskAssignee.id).where(TaskAssignee.task_id == task_id, TaskAssignee.user_id == user_id)
        if (await session.execute(stmt)).scalar_one_or_none() is not None:
            raise AssigneeAlreadyExists()

        assignee = await TaskService._assign(session, task, user_id)
        logger.info(f"User {user_id} assigned to task {task_id} by user {actor_id}")

        stmt = (
            select(TaskAssignee)
            .where(TaskAssignee.id == assignee.id)
            .options(selectinload(TaskAssignee.user))
            .execution_options(populate_existing=True)
        )
        return (await session.execute(stmt)).scalar_one()

    @staticmethod
    async def unassign(session: AsyncSession, task_id: int, actor_id: int, user_id: int) -> Task:
        """Remove an assignee from a task and notify them.

        Raises:
            TaskNotFound: If the task does not exist
            InsufficientPermissionsException: If the actor is not a project member
            AssigneeNotFound: If the user is not assigned to the task

        """
        task = await require_task_member(session, task_id, actor_id)

        stmt = select(TaskAssignee.id).where(TaskAssignee.task_id == task_id, TaskAssignee.user_id == user_id)
        assignee_id = (await session.execute(stmt)).scalar_one_or_none()
        if assignee_id is None:
            raise AssigneeNotFound()

        await session.execute(
            delete(TaskAssignee).where(TaskAssignee.id == assignee_id).execution_options(synchronize_session=False)
        )

        project_name = await TaskService._project_name(session, task.project_id)
        await NotificationService.notify(
            session,
            recipient_id=user_id,
            title=f"Task Unassigned: {task.title}",
            body=f'You have been unassigned from task "{task.title}" in project "{project_name}"',
            related_task_id=task.id,
        )

        logger.info(f"User {user_id} unassigned from task {task_id} by user {actor_id}")
        return await TaskService.load_task(session, task.id)
