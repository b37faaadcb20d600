from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, AsyncGenerator, Callable

from fastapi import Depends, FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from repokit.core.logging import correlation_id_var
from repokit.db.session import get_async_session
from repokit.exceptions import MissingKeyDescriptorError, MissingKeyValueError, NotFoundError
from repokit.registry import RepositoryRegistry
from repokit.schemas.common import ErrorInfo, ErrorResponse

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
def repository_provider(
    registry: RepositoryRegistry, capability: type, entity_type: type
) -> Callable[..., AsyncGenerator[Any, None]]:
    """
    Create a FastAPI dependency yielding a repository for one request.

    Usage:
        users_dep = repository_provider(registry, IReadRepository, User)

        @router.get("/users/{user_id}")
        async def read_user(user_id: int, users=Depends(users_dep)):
            return await users.get_or_throw(user_id)
    """

    async def _dep(
        session: AsyncSession = Depends(get_async_session),
    ) -> AsyncGenerator[Any, None]:
        repository = registry.resolve(capability, entity_type, session)
        try:
            yield repository
        finally:
            await repository.close()

    return _dep


def _build_error_response(
    request: Request,
    status_code: int,
    error_type: str,
    message: str,
    details: Any | None = None,
) -> JSONResponse:
    """Build a standardized ErrorResponse JSONResponse."""
    err = ErrorResponse(
        status=status_code,
        error=ErrorInfo(type=error_type, message=message, details=details),
        correlation_id=correlation_id_var.get(),
        path=request.url.path,
        method=request.method,
        timestamp=datetime.now(tz=timezone.utc),
    )
    return JSONResponse(status_code=status_code, content=err.model_dump(mode="json"))


# PUBLIC_INTERFACE
def register_exception_handlers(app: FastAPI) -> None:
    """Translate repository errors into the standard error envelope."""

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return _build_error_response(
            request=request,
            status_code=status.HTTP_404_NOT_FOUND,
            error_type="not_found",
            message=str(exc),
            details={"entity_type": exc.entity_type, "key": exc.key, "key_name": exc.key_name},
        )

    @app.exception_handler(MissingKeyValueError)
    async def missing_key_value_handler(request: Request, exc: MissingKeyValueError):
        return _build_error_response(
            request=request,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_type="missing_key_value",
            message=str(exc),
        )

    @app.exception_handler(MissingKeyDescriptorError)
    async def missing_key_descriptor_handler(request: Request, exc: MissingKeyDescriptorError):
        logger.error("Entity model misconfigured: %s", exc)
        return _build_error_response(
            request=request,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_type="model_configuration_error",
            message=str(exc),
        )
