"""Application error taxonomy.

Every core operation raises one of these; the handler registered in
``register_exception_handlers`` turns them into a stable JSON body with the
error kind and message. Store exceptions never reach the caller verbatim.
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    kind = "Internal"

    def __init__(self, message: str = "Something went wrong"):
        super().__init__(message)
        self.message = message


class BadRequestError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    kind = "BadRequest"


class QuotaExceeded(BadRequestError):
    kind = "QuotaExceeded"

    def __init__(self, message: str = "Storage quota exceeded"):
        super().__init__(message)


class UnauthorizedError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    kind = "Unauthorized"


class InvalidToken(UnauthorizedError):
    kind = "InvalidToken"

    def __init__(self, message: str = "Invalid token"):
        super().__init__(message)


class TokenExpired(InvalidToken):
    kind = "TokenExpired"

    def __init__(self, message: str = "Token expired"):
        super().__init__(message)


class ForbiddenError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    kind = "Forbidden"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    kind = "NotFound"


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    kind = "Conflict"


class InternalError(AppError):
    pass


async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.kind, "message": exc.message},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
