"""
HTTP API for appointment validation, availability and booking writes.

Routes:
- POST /api/appointments/validate       verdict (+ suggestions when invalid)
- GET  /api/availability                next valid slots for a staff member/day
- POST /api/appointments                create (201 / 409 / 422), optional X-Idempotency-Key
- PUT  /api/appointments/{id}/reschedule
- POST /api/appointments/{id}/cancel
- GET  /health

Authentication is handled in front of this service.
"""

import json
import sys
import time
from typing import Any, Dict, Optional

from aiohttp import web
from aiohttp.web import Request, Response
from pydantic import ValidationError as PydanticValidationError

from config import settings
from models.appointment import AppointmentCreate, CandidateAppointment, RescheduleRequest
from models.scheduling import BookingOutcome, BookingOutcomeStatus
from scheduling.service import BookingService
from utils.constants import (
    IDEMPOTENCY_KEY_HEADER,
    MAX_DURATION_MINUTES,
    MAX_IDEMPOTENCY_KEY_LENGTH,
    MAX_SUGGESTIONS_LIMIT,
)
from utils.datetime_utils import utc_now
from utils.exceptions import DatabaseError, MalformedCandidateError, ValidationError
from utils.logging_config import set_request_id, setup_logging
from utils.validation import parse_date_param, parse_int_param, require_uuid

logger = setup_logging(
    name=__name__, log_level=settings.log_level, log_file="server.log", log_dir="logs"
)

BOOKING_SERVICE = web.AppKey("booking_service", BookingService)

_OUTCOME_HTTP_STATUS = {
    BookingOutcomeStatus.CREATED: 201,
    BookingOutcomeStatus.RESCHEDULED: 200,
    BookingOutcomeStatus.CANCELLED: 200,
    BookingOutcomeStatus.REJECTED: 422,
    BookingOutcomeStatus.CONFLICT: 409,
    BookingOutcomeStatus.NOT_FOUND: 404,
}

# Health metrics
_health_metrics = {
    "validations": 0,
    "rejected_validations": 0,
    "availability_requests": 0,
    "bookings_created": 0,
    "booking_conflicts": 0,
    "replayed_bookings": 0,
    "store_failures": 0,
    "start_time": time.time(),
}


def _error(status: int, error: str, message: str, details: Any = None) -> Response:
    body: Dict[str, Any] = {"status": "error", "error": error, "message": message}
    if details is not None:
        body["details"] = details
    return web.json_response(body, status=status)


async def _read_json(request: Request) -> Dict[str, Any]:
    """
    Read a JSON object body.

    Raises:
        ValidationError: If the body is empty, not JSON or not an object
    """
    raw_body = await request.read()
    if not raw_body:
        raise ValidationError("Empty request body")
    try:
        payload = json.loads(raw_body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ValidationError("Invalid JSON in request body") from e
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload


def _idempotency_key(request: Request) -> Optional[str]:
    """
    Read the optional idempotency key header.

    Raises:
        ValidationError: If the key is blank or too long
    """
    key = request.headers.get(IDEMPOTENCY_KEY_HEADER)
    if key is None:
        return None
    key = key.strip()
    if not key or len(key) > MAX_IDEMPOTENCY_KEY_LENGTH:
        raise ValidationError(
            f"{IDEMPOTENCY_KEY_HEADER} must be 1-{MAX_IDEMPOTENCY_KEY_LENGTH} characters"
        )
    return key


def _outcome_response(outcome: BookingOutcome) -> Response:
    if outcome.replayed:
        _health_metrics["replayed_bookings"] += 1
    elif outcome.status == BookingOutcomeStatus.CREATED:
        _health_metrics["bookings_created"] += 1
    elif outcome.status == BookingOutcomeStatus.CONFLICT:
        _health_metrics["booking_conflicts"] += 1

    return web.json_response(
        outcome.model_dump(mode="json"), status=_OUTCOME_HTTP_STATUS[outcome.status]
    )


@web.middleware
async def request_id_middleware(request: Request, handler):
    """Tag the request (and its log records) with a request ID."""
    request_id = set_request_id(request.headers.get("X-Request-ID"))
    response = await handler(request)
    response.headers["X-Request-ID"] = request_id
    return response


@web.middleware
async def error_middleware(request: Request, handler):
    """Map domain exceptions to JSON error responses."""
    try:
        content_length = request.content_length
        if content_length is not None and content_length > settings.max_request_size_bytes:
            logger.warning(f"Request body too large: {content_length} bytes")
            return _error(
                413,
                "request_too_large",
                f"Request body exceeds maximum size of {settings.max_request_size_bytes} bytes",
            )
        return await handler(request)

    except web.HTTPException as e:
        if e.status < 400:
            raise
        response = _error(e.status, e.reason.lower().replace(" ", "_"), e.reason)
        if "Allow" in e.headers:
            response.headers["Allow"] = e.headers["Allow"]
        return response

    except PydanticValidationError as e:
        return _error(
            400,
            "validation_failed",
            "Invalid request",
            json.loads(e.json(include_url=False)),
        )

    except (ValidationError, MalformedCandidateError) as e:
        return _error(400, "validation_failed", str(e))

    except DatabaseError as e:
        _health_metrics["store_failures"] += 1
        logger.error(f"Store unavailable on {request.method} {request.path}: {e}")
        return _error(503, "store_unavailable", "Scheduling data is temporarily unavailable")

    except Exception as e:
        logger.error(f"Unexpected error on {request.method} {request.path}: {e}", exc_info=True)
        return _error(500, "internal_error", "Internal server error")


@web.middleware
async def security_headers_middleware(request: Request, handler):
    """Add security headers to all responses."""
    response = await handler(request)

    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Cache-Control"] = "no-store"
    if settings.is_production:
        response.headers["Strict-Transport-Security"] = (
            "max-age=31536000; includeSubDomains"
        )

    return response


async def validate_handler(request: Request) -> Response:
    """Validate a candidate appointment without writing anything."""
    service = request.app[BOOKING_SERVICE]
    candidate = CandidateAppointment.model_validate(await _read_json(request))

    now = utc_now()
    verdict = await service.validator.validate(candidate, now)
    _health_metrics["validations"] += 1

    body: Dict[str, Any] = verdict.model_dump(mode="json")
    if not verdict.valid:
        _health_metrics["rejected_validations"] += 1
        suggestions = await service.suggest_alternatives(candidate, now)
        if suggestions is None:
            body["suggestions_unavailable"] = True
        else:
            body["suggestions"] = [slot.model_dump(mode="json") for slot in suggestions]

    return web.json_response(body)


async def availability_handler(request: Request) -> Response:
    """List the next valid slots for a staff member on a day."""
    service = request.app[BOOKING_SERVICE]
    query = request.query

    staff_id = require_uuid(query.get("staff_id"), "staff_id")
    day = parse_date_param(query.get("date"))
    duration_minutes = parse_int_param(
        query.get("duration_minutes"), "duration_minutes", maximum=MAX_DURATION_MINUTES
    )
    max_suggestions = parse_int_param(
        query.get("max_suggestions"),
        "max_suggestions",
        maximum=MAX_SUGGESTIONS_LIMIT,
        default=settings.max_suggestions,
    )
    buffer_minutes: Optional[int] = None
    if query.get("buffer_minutes"):
        buffer_minutes = parse_int_param(
            query.get("buffer_minutes"), "buffer_minutes", minimum=0, maximum=240
        )

    slots = await service.suggester.suggest(
        staff_id,
        day,
        duration_minutes,
        buffer_minutes=buffer_minutes,
        max_suggestions=max_suggestions,
        now=utc_now(),
    )
    _health_metrics["availability_requests"] += 1

    return web.json_response(
        {
            "staff_id": staff_id,
            "date": day.isoformat(),
            "duration_minutes": duration_minutes,
            "slots": [slot.model_dump(mode="json") for slot in slots],
        }
    )


async def create_appointment_handler(request: Request) -> Response:
    """Validate, then insert; the insert result decides the status code."""
    service = request.app[BOOKING_SERVICE]
    idempotency_key = _idempotency_key(request)
    appointment_data = AppointmentCreate.model_validate(await _read_json(request))
    outcome = await service.create_booking(
        appointment_data, utc_now(), idempotency_key=idempotency_key
    )
    return _outcome_response(outcome)


async def reschedule_appointment_handler(request: Request) -> Response:
    """Move an existing appointment to a new time range."""
    service = request.app[BOOKING_SERVICE]
    appointment_id = require_uuid(request.match_info.get("appointment_id"), "appointment_id")
    reschedule = RescheduleRequest.model_validate(await _read_json(request))
    outcome = await service.reschedule_booking(appointment_id, reschedule, utc_now())
    return _outcome_response(outcome)


async def cancel_appointment_handler(request: Request) -> Response:
    """Cancel an appointment, subject to the cancellation deadline."""
    service = request.app[BOOKING_SERVICE]
    appointment_id = require_uuid(request.match_info.get("appointment_id"), "appointment_id")
    outcome = await service.cancel_booking(appointment_id, utc_now())
    return _outcome_response(outcome)


async def health_check(request: Request) -> Response:
    """Health check endpoint with request metrics."""
    uptime_hours = (time.time() - _health_metrics["start_time"]) / 3600

    return web.json_response(
        {
            "status": "ok",
            "service": "salon-scheduling",
            "timestamp": time.time(),
            "uptime_hours": round(uptime_hours, 2),
            "metrics": {
                key: value for key, value in _health_metrics.items() if key != "start_time"
            },
            "configuration": {
                "timezone": settings.timezone,
                "slot_increment_minutes": settings.slot_increment_minutes,
                "max_request_size_bytes": settings.max_request_size_bytes,
            },
        }
    )


def create_app(booking_service: Optional[BookingService] = None) -> web.Application:
    """
    Create aiohttp application with middleware and routes.

    Args:
        booking_service: Service to use; one backed by Supabase is built if omitted

    Returns:
        Configured web application
    """
    app = web.Application(
        middlewares=[
            request_id_middleware,
            security_headers_middleware,
            error_middleware,
        ],
        client_max_size=settings.max_request_size_bytes,
    )
    app[BOOKING_SERVICE] = booking_service or BookingService()

    app.router.add_post("/api/appointments/validate", validate_handler)
    app.router.add_get("/api/availability", availability_handler)
    app.router.add_post("/api/appointments", create_appointment_handler)
    app.router.add_put(
        "/api/appointments/{appointment_id}/reschedule", reschedule_appointment_handler
    )
    app.router.add_post(
        "/api/appointments/{appointment_id}/cancel", cancel_appointment_handler
    )
    app.router.add_get("/health", health_check)

    return app


if __name__ == "__main__":
    try:
        settings.validate_all_required()
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    logger.info(f"Starting scheduling API on {settings.host}:{settings.port}")
    web.run_app(create_app(), host=settings.host, port=settings.port)
