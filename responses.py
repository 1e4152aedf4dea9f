# backend/responses.py

import logging

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from errors import ErrorKind, ServiceError

logger = logging.getLogger(__name__)


# ─── Envelopes ─────────────────────────────────────────────────────────────────
def success_response(data):
    return JSONResponse(content={"success": True, "data": jsonable_encoder(data)})


def error_response(message: str, code: str, status_code: int):
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message, "code": code},
    )


# ─── Request body helpers ──────────────────────────────────────────────────────
async def json_body(request: Request):
    """Dependency: the parsed JSON body, or INVALID_JSON."""
    try:
        return await request.json()
    except ValueError:
        raise ServiceError(ErrorKind.INVALID_JSON, "Invalid JSON in request body")


def _error_message(err: dict) -> str:
    if err["type"] == "missing":
        return f"{'.'.join(str(p) for p in err['loc'])} is required"
    # ValueErrors raised by our validators carry the message we want
    raised = (err.get("ctx") or {}).get("error")
    if isinstance(raised, ValueError):
        return str(raised)
    return err["msg"]


def validate_body(schema, body, field_codes=None):
    """Validate ``body`` against ``schema``.

    On failure the first error wins. ``field_codes`` maps a wire field name to
    the error kind reported for it; unmapped fields give VALIDATION_ERROR.
    A callable value receives the pydantic error and returns the kind.
    """
    try:
        return schema.model_validate(body)
    except ValidationError as exc:
        err = exc.errors()[0]
        kind = ErrorKind.VALIDATION_ERROR
        for field, mapped in (field_codes or {}).items():
            if field in err["loc"]:
                kind = mapped(err) if callable(mapped) else mapped
                break
        message = _error_message(err)
        logger.info("Rejected %s body: %s (%s)", schema.__name__, message, kind.value)
        raise ServiceError(kind, message)
