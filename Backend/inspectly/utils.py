import uuid
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import HTTPException
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder

from inspectly.exceptions import AuthError, BackendError, RecordNotFoundError

logger = logging.getLogger(__name__)


def success_resp(message: str, data: Any = None, status_code: int = 200):
    """
    Standardized Success Response
    """
    if data is None:
        data = {}
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder({
            "success": True,
            "message": message,
            "data": data
        })
    )


def error_resp(message: str, status_code: int = 500):
    """
    Standardized Error Response
    """
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder({
            "success": False,
            "message": message,
            "data": {}
        })
    )


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_date(value) -> str:
    """Render a date or ISO string the way report headers and exports show it (MM/DD/YYYY)."""
    if value is None:
        return ""
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return value
    return value.strftime("%m/%d/%Y")


@contextmanager
def http_errors(failure_message: str, not_found_message: Optional[str] = None):
    """Map auth and backend errors raised inside the block onto HTTPException."""
    try:
        yield
    except AuthError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message)
    except RecordNotFoundError as exc:
        raise HTTPException(status_code=404, detail=not_found_message or str(exc))
    except BackendError as exc:
        logger.error("%s: %s", failure_message, exc)
        raise HTTPException(status_code=500, detail=failure_message)
