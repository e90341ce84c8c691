"""Events endpoints."""

import json
import logging
import time
from datetime import datetime

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from api.dependencies import get_actor, get_event_store
from api.logging import RequestLog, log_request
from api.models.requests import EventCreate, EventUpdate
from api.models.responses import ErrorResponse, EventData
from core.exceptions import EventNotFound, EventTimeError, UnresolvedReferences
from services import events
from services.audit import Actor
from services.store import EventStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


def error_response(status_code: int, error: str, details=None) -> JSONResponse:
    content = ErrorResponse(error=error, details=details).model_dump(exclude_none=True)
    return JSONResponse(status_code=status_code, content=content)


def event_payload(event) -> dict:
    return EventData.from_record(event, events.display_end_time(event)).to_json()


async def read_body(request: Request, model):
    """Parse and validate a JSON body; raises ValidationError or ValueError."""
    try:
        body = await request.json()
    except ValueError:
        raise ValueError("Request body must be valid JSON")
    return model.model_validate(body)


def failure_response(exc: Exception, action: str, request_log: RequestLog) -> JSONResponse:
    """Map a service exception to the response envelope and record it."""
    request_log.error_message = str(exc)

    if isinstance(exc, ValidationError):
        details = json.loads(exc.json(include_url=False))
        for issue in details:
            location = ".".join(str(part) for part in issue.get("loc", []))
            request_log.details.append(("validation_error", f"{location}: {issue.get('msg')}"))
        return error_response(status.HTTP_400_BAD_REQUEST, "Validation error", details)

    if isinstance(exc, EventTimeError):
        return error_response(status.HTTP_400_BAD_REQUEST, str(exc))

    if isinstance(exc, UnresolvedReferences):
        details = exc.as_details()
        for category, inputs in details.items():
            for value in inputs:
                request_log.details.append(("unresolved_reference", f"{category}: {value}"))
        return error_response(
            status.HTTP_400_BAD_REQUEST, "Unable to resolve related records", details
        )

    if isinstance(exc, EventNotFound):
        return error_response(status.HTTP_404_NOT_FOUND, "Event not found")

    if isinstance(exc, ValueError):
        return error_response(
            status.HTTP_400_BAD_REQUEST, "Validation error", [{"msg": str(exc)}]
        )

    logger.error("Failed to %s event", action, exc_info=exc)
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, f"Failed to {action} event")


def finish(request_log: RequestLog, response: JSONResponse, started: float, store: EventStore):
    """Complete and persist the request log. Never fails the request."""
    request_log.status_code = response.status_code
    request_log.processing_time_ms = int((time.time() - started) * 1000)
    try:
        log_request(request_log, store.db_path)
    except Exception:
        logger.warning("Request log write failed for %s", request_log.request_id, exc_info=True)
    return response


def start_log(endpoint: str, method: str, actor: Actor) -> RequestLog:
    return RequestLog(
        endpoint=endpoint,
        method=method,
        client_ip=actor.ip_address,
        actor_id=actor.id,
    )


@router.get("/events")
async def list_events_endpoint(
    q: str | None = None,
    tag: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    store: EventStore = Depends(get_event_store),
):
    """List events, optionally filtered by text, tag and time window."""
    try:
        found = await events.list_events(store, q=q, tag=tag, start=start, end=end)
    except Exception:
        logger.exception("Error fetching events")
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to fetch events")
    return {"ok": True, "data": [event_payload(event) for event in found]}


@router.post("/events")
async def create_event_endpoint(
    request: Request,
    store: EventStore = Depends(get_event_store),
    actor: Actor = Depends(get_actor),
):
    """
    Create an event.

    The end is derived from isAllDay, endTime or endDateTime, and every
    userIds/departmentIds/unitIds entry must resolve before anything is written.
    """
    started = time.time()
    request_log = start_log("/api/events", "POST", actor)

    try:
        payload = await read_body(request, EventCreate)
        created = await events.create_event(
            store,
            title=payload.title,
            description=payload.description,
            tags=payload.tags,
            link=payload.link,
            start_date_time=payload.start_date_time,
            end_date_time=payload.end_date_time,
            end_time=payload.end_time,
            is_all_day=payload.is_all_day,
            is_global=payload.is_global,
            user_inputs=payload.user_ids,
            department_inputs=payload.department_ids,
            unit_inputs=payload.unit_ids,
            actor=actor,
        )
        request_log.event_id = created.id
        response = JSONResponse(
            content={
                "ok": True,
                "data": event_payload(created),
                "message": "Event created successfully",
            }
        )
    except Exception as e:
        response = failure_response(e, "create", request_log)

    return finish(request_log, response, started, store)


@router.get("/events/{event_id}")
async def get_event_endpoint(event_id: str, store: EventStore = Depends(get_event_store)):
    try:
        event = await events.get_event(store, event_id)
    except EventNotFound:
        return error_response(status.HTTP_404_NOT_FOUND, "Event not found")
    except Exception:
        logger.exception("Error fetching event %s", event_id)
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to fetch event")
    return {"ok": True, "data": event_payload(event)}


@router.patch("/events/{event_id}")
async def update_event_endpoint(
    event_id: str,
    request: Request,
    store: EventStore = Depends(get_event_store),
    actor: Actor = Depends(get_actor),
):
    """Partially update an event; relation lists, when sent, replace the stored ones."""
    started = time.time()
    request_log = start_log(f"/api/events/{event_id}", "PATCH", actor)
    request_log.event_id = event_id

    try:
        payload = await read_body(request, EventUpdate)
        updated = await events.update_event(
            store, event_id, payload.model_dump(exclude_unset=True), actor=actor
        )
        response = JSONResponse(
            content={
                "ok": True,
                "data": event_payload(updated),
                "message": "Event updated successfully",
            }
        )
    except Exception as e:
        response = failure_response(e, "update", request_log)

    return finish(request_log, response, started, store)


@router.delete("/events/{event_id}")
async def delete_event_endpoint(
    event_id: str,
    store: EventStore = Depends(get_event_store),
    actor: Actor = Depends(get_actor),
):
    started = time.time()
    request_log = start_log(f"/api/events/{event_id}", "DELETE", actor)
    request_log.event_id = event_id

    try:
        await events.delete_event(store, event_id, actor=actor)
        response = JSONResponse(content={"ok": True, "message": "Event deleted successfully"})
    except Exception as e:
        response = failure_response(e, "delete", request_log)

    return finish(request_log, response, started, store)
