"""Task router (API endpoints) and the task subscription socket."""

import asyncio
import logging

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status

from src.database.dependencies import SessionScope, get_session_scope
from src.features.auth.dependencies import get_current_context
from src.features.auth.exceptions import InvalidTokenException
from src.features.auth.jwt_utils import TokenKind, verify_token
from src.shared.context import RequestContext
from src.shared.events.broker import Event, EventBroker, EventType, Subscription, get_event_broker

from .models import Task, TaskStatus
from .schemas import TaskAssignRequest, TaskAssigneeResponse, TaskCreateRequest, TaskResponse, TaskStatusUpdate
from .service import TaskService

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Tasks"])
subscription_router = APIRouter(prefix="/subscriptions", tags=["Subscriptions"])


def _task_event(event_type: EventType, task: Task, **extra) -> Event:
    return Event(type=event_type, payload={"task_id": task.id, "project_id": task.project_id, **extra})


@router.post("/tasks", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def add_task(
    data: TaskCreateRequest,
    ctx: RequestContext = Depends(get_current_context),
    broker: EventBroker = Depends(get_event_broker),
):
    """Create a task (project members only) and announce it to subscribers."""
    task = await TaskService.create_task(
        ctx.session,
        ctx.user_id,
        data.project_id,
        data.title,
        description=data.description,
        priority=data.priority,
        due_date=data.due_date,
        assignee_id=data.assignee_id,
    )
    await ctx.session.commit()

    broker.publish(_task_event(EventType.TASK_ADDED, task))
    return TaskResponse.model_validate(task)


@router.get("/tasks/mine", response_model=list[TaskResponse])
async def my_tasks(ctx: RequestContext = Depends(get_current_context)):
    """List the tasks assigned to the current user."""
    tasks = await TaskService.list_for_user(ctx.session, ctx.user_id)
    return [TaskResponse.model_validate(t) for t in tasks]


@router.get("/tasks/{task_id}", response_model=TaskResponse)
async def get_task(task_id: int, ctx: RequestContext = Depends(get_current_context)):
    task = await TaskService.get_task(ctx.session, task_id, ctx.user_id)
    return TaskResponse.model_validate(task)


@router.get("/projects/{project_id}/tasks", response_model=list[TaskResponse])
async def tasks_by_status(
    project_id: int,
    task_status: TaskStatus | None = Query(None, alias="status"),
    ctx: RequestContext = Depends(get_current_context),
):
    """List a project's tasks, optionally filtered by status (project members only)."""
    tasks = await TaskService.list_by_status(ctx.session, project_id, ctx.user_id, task_status)
    return [TaskResponse.model_validate(t) for t in tasks]


@router.patch("/tasks/{task_id}/status", response_model=TaskResponse)
async def update_task_status(
    task_id: int,
    data: TaskStatusUpdate,
    ctx: RequestContext = Depends(get_current_context),
    broker: EventBroker = Depends(get_event_broker),
):
    """Change a task's status. Assignees other than the caller are notified."""
    task = await TaskService.update_status(ctx.session, task_id, ctx.user_id, data.status)
    await ctx.session.commit()

    broker.publish(_task_event(EventType.TASK_UPDATED, task, status=data.status.value))
    return TaskResponse.model_validate(task)


@router.post("/tasks/{task_id}/assignees", response_model=TaskAssigneeResponse, status_code=status.HTTP_201_CREATED)
async def assign_task_member(
    task_id: int,
    data: TaskAssignRequest,
    ctx: RequestContext = Depends(get_current_context),
):
    """Assign a project member to a task."""
    assignee = await TaskService.assign(ctx.session, task_id, ctx.user_id, data.user_id)
    await ctx.session.commit()
    return TaskAssigneeResponse.model_validate(assignee)


@router.delete("/tasks/{task_id}/assignees/{user_id}", response_model=TaskResponse)
async def unassign_task(
    task_id: int,
    user_id: int,
    ctx: RequestContext = Depends(get_current_context),
    broker: EventBroker = Depends(get_event_broker),
):
    """Remove an assignee from a task."""
    task = await TaskService.unassign(ctx.session, task_id, ctx.user_id, user_id)
    await ctx.session.commit()

    broker.publish(_task_event(EventType.TASK_UNASSIGNED, task, user_id=user_id))
    return TaskResponse.model_validate(task)


async def _forward_task_events(
    websocket: WebSocket, subscription: Subscription, user_id: int, session_scope: SessionScope
) -> None:
    async for event in subscription:
        async with session_scope() as session:
            task = await TaskService.get_task_for_subscriber(session, event.payload["task_id"], user_id)
            payload = TaskResponse.model_validate(task).model_dump(mode="json") if task is not None else None
        if payload is None:
            continue
        try:
            await websocket.send_json(payload)
        except WebSocketDisconnect:
            return


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    # Incoming frames are ignored
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        return


@subscription_router.websocket("/task-added")
async def task_added(
    websocket: WebSocket,
    token: str | None = Query(None),
    broker: EventBroker = Depends(get_event_broker),
    session_scope: SessionScope = Depends(get_session_scope),
):
    """Stream newly created tasks of the projects the caller belongs to.

    Authenticates with an access token in the ``token`` query parameter.
    Membership is checked again for every event.
    """
    try:
        user_id = verify_token(TokenKind.ACCESS, token).user_id if token else None
    except InvalidTokenException as err:
        logger.info(f"Subscription rejected: {err.detail}")
        user_id = None

    if user_id is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    async with broker.subscribe(EventType.TASK_ADDED) as subscription:
        await websocket.accept()
        logger.info(f"User {user_id} subscribed to task-added")

        forward = asyncio.create_task(_forward_task_events(websocket, subscription, user_id, session_scope))
        disconnect = asyncio.create_task(_wait_for_disconnect(websocket))
        done, pending = await asyncio.wait({forward, disconnect}, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        for task in done:
            task.result()

    logger.info(f"User {user_id} unsubscribed from task-added")
