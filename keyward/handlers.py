"""Exception handling shared by the identity server and services using the gate."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from keyward.errors import KeywardError, RateLimitedError


async def keyward_error_handler(request: Request, exc: KeywardError) -> JSONResponse:
    """Handle Keyward errors with consistent format."""
    request_id = getattr(request.state, "request_id", None)
    headers = None
    if isinstance(exc, RateLimitedError) and "retry_after" in exc.details:
        headers = {"Retry-After": str(exc.details["retry_after"])}
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(request_id),
        headers=headers,
    )


def install_error_handler(app: FastAPI) -> None:
    """Render every KeywardError raised in ``app`` as its HTTP status."""
    app.add_exception_handler(KeywardError, keyward_error_handler)
