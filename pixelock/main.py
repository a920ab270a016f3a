from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .config import settings
from .db import init_db
from .errors import TicketError
from .logging_config import configure_logging
from .routers.api import router as api_router

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.APP_NAME)


@app.on_event("startup")
def startup():
    init_db()


@app.exception_handler(TicketError)
def ticket_error_handler(request: Request, exc: TicketError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, type(exc).__name__)
    return JSONResponse({"error": exc.message}, status_code=exc.status_code)


app.include_router(api_router)


@app.get("/health")
def health():
    return {"status": "ok"}
