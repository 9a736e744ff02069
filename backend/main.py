"""FastAPI application entry point."""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from api import plaid, reports, statements, sync
from logging_config import setup_logging
from utils.request_context import (
    REQUEST_ID_HEADER,
    new_request_id,
    reset_request_id,
    set_request_id,
)

setup_logging()
logger = logging.getLogger(__name__)


app = FastAPI(
    title="Ledger Sync",
    description="Bank transaction sync and statement reconciliation",
    version="0.1.0",
)

# CORS configuration for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[REQUEST_ID_HEADER],
)


@app.middleware("http")
async def correlation_id_middleware(request: Request, call_next):
    """Tag each request with a correlation id for logs and responses.

    A caller-supplied ``x-request-id`` is reused; otherwise one is generated.
    """
    request_id = request.headers.get(REQUEST_ID_HEADER) or new_request_id()
    request.state.request_id = request_id
    token = set_request_id(request_id)
    try:
        response = await call_next(request)
    finally:
        reset_request_id(token)
    response.headers[REQUEST_ID_HEADER] = request_id
    return response


# Include API routers
app.include_router(plaid.router)
app.include_router(sync.router)
app.include_router(reports.router)
app.include_router(statements.router)


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "ok"}
