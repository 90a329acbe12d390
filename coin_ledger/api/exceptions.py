from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..core.errors import DatabaseError, LedgerError


logger = logging.getLogger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(DatabaseError)
    async def database_error_handler(
        request: Request, exc: DatabaseError
    ) -> JSONResponse:
        logger.error(
            "request.database_error",
            exc_info=exc.cause or exc,
            extra={"path": request.url.path},
        )
        return JSONResponse(status_code=500, content={"error": str(exc)})

    @app.exception_handler(LedgerError)
    async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": str(exc)})
