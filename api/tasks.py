"""Task list endpoint for Vercel."""

import json
import asyncio
from typing import Any, Optional
from pydantic import ValidationError
from src.models.task import TaskFilter
from src.services.session import SessionProvider
from src.services.task_repository import get_task_repository
from src.services.task_store import TaskStore
from src.services.task_view import build_task_view, task_row
from src.utils.logging import correlation_context, get_structured_logger, setup_logging, mask_user_id
from src.utils.logging_config import LoggingConfig

setup_logging()
logger = get_structured_logger(__name__)


def _response(status: int, payload: dict[str, Any]) -> dict[str, Any]:
    return {
        "statusCode": status,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(payload)
    }


def _parse_body(request: dict) -> dict:
    raw = request.get("body") or ""
    if isinstance(raw, dict):
        return raw
    body = json.loads(raw) if raw else {}
    if not isinstance(body, dict):
        raise ValueError("request body must be a JSON object")
    return body


def _header(request: dict, name: str) -> Optional[str]:
    for key, value in (request.get("headers") or {}).items():
        if str(key).lower() == name.lower():
            return value
    return None


def _run(coro):
    try:
        loop = asyncio.get_event_loop()
        if loop.is_closed():
            raise RuntimeError("event loop is closed")
    except RuntimeError:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
    return loop.run_until_complete(coro)


def _store_payload(store: TaskStore, **extra: Any) -> dict[str, Any]:
    payload = {"active_count": store.active_count, "has_completed": store.has_completed}
    payload.update(extra)
    return payload


async def _dispatch(request: dict, store: TaskStore) -> dict[str, Any]:
    method = (request.get("method") or "GET").upper()
    query = request.get("query") or {}

    if method == "GET":
        task_filter = query.get("filter") or TaskFilter.ALL.value
        try:
            view = build_task_view(store.tasks, task_filter)
        except ValueError:
            return _response(400, {"error": f"unknown filter: {task_filter}"})
        return _response(200, view)

    body = _parse_body(request)

    if method == "POST":
        created = await store.add(body.get("text"), body.get("due_date"), body.get("priority"))
        if store.error:
            return _response(502, {"error": store.error})
        return _response(200, _store_payload(store, task=task_row(created) if created else None))

    if method == "PATCH":
        task_id = str(body.get("id") or "")
        updated = await store.toggle_completion(task_id)
        if store.error:
            return _response(502, {"error": store.error})
        if updated is None:
            return _response(404, {"error": f"task not found: {task_id}"})
        return _response(200, _store_payload(store, task=task_row(updated)))

    if method == "DELETE":
        if str(query.get("completed", "")).lower() == "true":
            removed = await store.clear_completed()
            if store.error:
                return _response(502, {"error": store.error})
            return _response(200, _store_payload(store, removed=removed))

        task_id = str(body.get("id") or query.get("id") or "")
        deleted = await store.remove(task_id)
        if store.error:
            return _response(502, {"error": store.error})
        if not deleted:
            return _response(404, {"error": f"task not found: {task_id}"})
        return _response(200, _store_payload(store, removed=1))

    return _response(405, {"error": f"method not allowed: {method}"})


async def handle_request(request: dict) -> dict[str, Any]:
    """Load the caller's tasks, apply the requested operation, render the result."""
    session = SessionProvider.from_headers(request.get("headers"))
    user = session.current_user
    if user is None:
        return _response(401, {"error": "authentication required"})

    store = TaskStore(get_task_repository())
    await store.initialize(user)
    if store.error:
        return _response(502, {"error": store.error})

    logger.info(
        "Task request",
        method=request.get("method"),
        user_id=mask_user_id(user.id),
        storage=store.repository.name
    )
    try:
        return await _dispatch(request, store)
    except (ValueError, ValidationError) as e:
        return _response(400, {"error": str(e)})


def handler(request):
    """Vercel serverless entry point."""
    correlation_id = _header(request, LoggingConfig.LOG_CORRELATION_ID_HEADER)
    with correlation_context(correlation_id):
        try:
            return _run(handle_request(request))
        except Exception as e:
            logger.error(f"Error processing task request: {e}", exc_info=True)
            return _response(500, {"error": "internal server error"})
