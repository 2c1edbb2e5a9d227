"""HTTP middleware: request correlation, domain-error translation, CORS.

Starlette runs the last-added middleware first, so a request passes
RequestIDMiddleware, then ErrorHandlerMiddleware, then CORS on its way in.

Domain errors become ``{"error": <code>, "message": <text>}`` with a status
chosen by the most specific matching entry of ERROR_STATUS.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

import structlog
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from bitlogic_escrow.domain.exceptions import (
    BitLogicError,
    EscrowNotFoundError,
    InvalidProofError,
    InvalidStateError,
    LedgerError,
    TimeoutNotElapsedError,
)

if TYPE_CHECKING:
    from fastapi import FastAPI, Request, Response

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Checked in order; BitLogicError must stay last.
ERROR_STATUS: tuple[tuple[type[BitLogicError], int], ...] = (
    (EscrowNotFoundError, 404),
    (InvalidStateError, 409),
    (TimeoutNotElapsedError, 409),
    (InvalidProofError, 422),
    (LedgerError, 502),
    (BitLogicError, 400),
)


def status_for(exc: BitLogicError) -> int:
    return next(status for cls, status in ERROR_STATUS if isinstance(exc, cls))


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Tag the request (and every log line it produces) with a request id."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id, method=request.method, path=request.url.path
        )

        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Turn escaped exceptions into JSON error responses."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        try:
            return await call_next(request)
        except BitLogicError as exc:
            status = status_for(exc)
            log = logger.error if status >= 500 else logger.warning
            log("request.rejected", status=status, code=exc.code, error=exc.message)
            return JSONResponse(
                status_code=status,
                content={"error": exc.code, "message": exc.message},
            )
        except Exception:
            logger.exception("request.unhandled_error")
            return JSONResponse(
                status_code=500,
                content={"error": "INTERNAL_ERROR", "message": "An unexpected error occurred"},
            )


def setup_middleware(app: FastAPI) -> None:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(RequestIDMiddleware)
