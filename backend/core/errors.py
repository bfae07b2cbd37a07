import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from ledger.errors import (
    AlreadyDeductedError,
    AlreadyRefundedError,
    NotFoundError,
    PartialApplicationError,
    StorageError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def setup_exception_handlers(app: FastAPI):

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        code = status.HTTP_400_BAD_REQUEST
        if isinstance(exc, (AlreadyRefundedError, AlreadyDeductedError)):
            code = status.HTTP_409_CONFLICT
        return JSONResponse(status_code=code, content={"detail": exc.message, "field": exc.field})

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": exc.message})

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError):
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        content = {"detail": exc.message}
        if isinstance(exc, PartialApplicationError):
            content["applied_transaction_ids"] = [str(e.transaction_id) for e in exc.applied]
            content["failed_ingredient_id"] = (
                str(exc.failed_ingredient_id) if exc.failed_ingredient_id else None
            )
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)
