"""Page routes: home, dashboard, task detail, and their HTMX fragments."""

import logging
from collections.abc import AsyncIterator

from fastapi import APIRouter, Depends, Form, Request, Response, status
from fastapi.responses import JSONResponse, RedirectResponse, StreamingResponse
from fastapi.templating import Jinja2Templates

from src.core.config import constants
from src.core.errors import classify_error_with_response
from src.domain.session import Identity
from src.domain.task import Task
from src.services import comment_service, counter_service, task_detail_service, task_service
from src.services.live_task_list import live_task_list
from src.services.session_service import get_session, require_session


logger = logging.getLogger(__name__)

router = APIRouter(tags=["pages"])

templates = Jinja2Templates(directory=str(constants.TEMPLATES_DIR))
templates.env.globals["share_url"] = task_service.task_share_url
templates.env.globals["can_delete"] = comment_service.can_delete

HOME = "/"


def is_htmx_request(request: Request) -> bool:
    """Check if the request is from HTMX."""
    return request.headers.get("HX-Request") == "true"


def error_response(exc: Exception, status_code: int) -> JSONResponse:
    """JSON error body for a rejected fragment request."""
    return JSONResponse(content=classify_error_with_response(exc).model_dump(mode="json"), status_code=status_code)


def format_sse(event: str, data: str) -> str:
    """Encode one server-sent event; multi-line data becomes several data fields."""
    lines = [f"event: {event}"]
    lines.extend(f"data: {line}" for line in data.splitlines() or [""])
    return "\n".join(lines) + "\n\n"


def render_task_list(tasks: list[Task]) -> str:
    return templates.get_template("partials/task_list.html").render(tasks=tasks)


@router.get("/")
async def get_home(request: Request) -> Response:
    """Render the public home page with the store counters."""
    counters = await counter_service.get_home_counters()
    return templates.TemplateResponse(
        request,
        name="index.html",
        context={"counters": counters, "session": get_session(request)},
    )


@router.get("/dashboard")
async def get_dashboard(request: Request, identity: Identity = Depends(require_session)) -> Response:
    """Render the owner's dashboard: the creation form and the live task list."""
    tasks = await task_service.list_tasks(owner=identity.email)
    return templates.TemplateResponse(
        request,
        name="dashboard.html",
        context={"tasks": tasks, "session": get_session(request)},
    )


@router.post("/dashboard/tasks")
async def post_task(
    *,
    request: Request,
    identity: Identity = Depends(require_session),
    title: str = Form(""),
    description: str = Form(""),
    is_public: bool = Form(False),
) -> Response:
    """Create a task; the live list picks it up through its subscription."""
    await task_service.create_task(owner=identity.email, title=title, description=description, is_public=is_public)

    if is_htmx_request(request):
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return RedirectResponse(url="/dashboard", status_code=status.HTTP_303_SEE_OTHER)


@router.delete("/dashboard/tasks/{task_id}")
async def delete_task(task_id: str, identity: Identity = Depends(require_session)) -> Response:
    """Delete one of the owner's tasks."""
    try:
        await task_service.delete_task(task_id=task_id, actor=identity.email)
    except PermissionError as e:
        return error_response(e, status.HTTP_403_FORBIDDEN)
    return Response(status_code=status.HTTP_200_OK)


@router.post("/dashboard/tasks/{task_id}/visibility")
async def post_task_visibility(
    *,
    task_id: str,
    identity: Identity = Depends(require_session),
    is_public: bool = Form(False),
) -> Response:
    """Make a task public or private again."""
    try:
        await task_service.set_task_visibility(task_id=task_id, actor=identity.email, is_public=is_public)
    except PermissionError as e:
        return error_response(e, status.HTTP_403_FORBIDDEN)
    except KeyError as e:
        return error_response(e, status.HTTP_404_NOT_FOUND)
    return Response(status_code=status.HTTP_200_OK)


@router.get("/dashboard/tasks/stream")
async def stream_tasks(identity: Identity = Depends(require_session)) -> StreamingResponse:
    """Server-sent events carrying the re-rendered task list after every change."""

    async def event_stream() -> AsyncIterator[str]:
        async with live_task_list(identity.email) as view:
            yield format_sse("tasks", render_task_list(await view.refresh()))
            while True:
                tasks = await view.next_change(timeout=constants.STREAM_KEEPALIVE_SECONDS)
                if tasks is None:
                    yield ": keepalive\n\n"
                    continue
                yield format_sse("tasks", render_task_list(tasks))

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@router.get("/dashboard/task/{task_id}")
async def get_task_detail(request: Request, task_id: str) -> Response:
    """Render a public task with its comments; anything else goes back home."""
    detail = await task_detail_service.resolve_task_detail(task_id)
    if detail is None:
        return RedirectResponse(url=HOME, status_code=status.HTTP_307_TEMPORARY_REDIRECT)

    return templates.TemplateResponse(
        request,
        name="task_detail.html",
        context={"detail": detail, "session": get_session(request)},
    )


@router.post("/dashboard/task/{task_id}/comments")
async def post_comment(request: Request, task_id: str, comment: str = Form("")) -> Response:
    """Add a comment and return its fragment for HTMX to append.

    The fragment also drops the empty-thread placeholder out of band.
    """
    session = get_session(request)
    created = await comment_service.add_comment(task_id=task_id, session=session, body=comment)

    if not is_htmx_request(request):
        return RedirectResponse(url=f"/dashboard/task/{task_id}", status_code=status.HTTP_303_SEE_OTHER)
    if created is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return templates.TemplateResponse(
        request,
        name="partials/comment_added.html",
        context={"comment": created, "session": session},
    )


@router.delete("/dashboard/comments/{comment_id}")
async def delete_comment(comment_id: str, identity: Identity = Depends(require_session)) -> Response:
    """Delete the caller's own comment; an empty body lets HTMX drop the element.

    Unknown IDs answer the same way, so a stale element disappears too.
    """
    try:
        await comment_service.delete_comment(comment_id=comment_id, actor=identity.email)
    except PermissionError as e:
        return error_response(e, status.HTTP_403_FORBIDDEN)
    return Response(status_code=status.HTTP_200_OK)
