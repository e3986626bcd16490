"""Exception handler middleware for structured error responses."""

import logging
from fastapi import Request
from fastapi.responses import JSONResponse
from ..exceptions import NcloudException

logger = logging.getLogger(__name__)


async def ncloud_exception_handler(request: Request, exc: NcloudException) -> JSONResponse:
    """
    Convert a NcloudException into the standard ``{error, message, details}`` body.

    Client errors (4xx) are logged at warning level; server errors at error.
    """
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        f"NcloudException: {exc.error_code.value}",
        extra={
            "error_code": exc.error_code.value,
            "path": request.url.path,
            "method": request.method,
            "details": exc.details,
            "status_code": exc.status_code
        }
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )
