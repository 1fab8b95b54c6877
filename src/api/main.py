import logging
import os
import time

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from api import state
from api.metrics import REQUEST_LATENCY_SECONDS, REQUESTS_TOTAL
from api.routers import agent, campaigns, ops, presentations, tasks
from campaigns.delivery import build_delivery
from llm.llm_client import LLMClient
from presentation.pdf_renderer import PlaywrightPdfRenderer
from presentation.presentation_service import UPLOADS_DIR, UPLOADS_URL_PREFIX
from storage import db
from storage.memory_store import InMemoryStore
from storage.postgres_store import PostgresStore
from taskagent.errors import TaskAgentError

# Logging configuration
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Task Agent")

app.include_router(agent.router)
app.include_router(campaigns.router)
app.include_router(presentations.router)
app.include_router(tasks.router)
app.include_router(ops.router)

# Generated PDFs are served from here (pdfUrl points into this mount).
app.mount(
    UPLOADS_URL_PREFIX,
    StaticFiles(directory=UPLOADS_DIR, check_dir=False),
    name="uploads",
)

_HTTP_MESSAGES = {
    401: "Unauthorized",
    404: "Not found",
    405: "Method not allowed",
}


def _error_body(message: str, error=None) -> dict:
    body = {"message": message}
    if error:
        body["error"] = error
    return body


@app.exception_handler(TaskAgentError)
async def task_agent_error_handler(request: Request, exc: TaskAgentError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc.message, exc.detail))


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = _HTTP_MESSAGES.get(exc.status_code, str(exc.detail))
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(message),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content=_error_body("Invalid request body", str(exc.errors())),
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content=_error_body("Internal server error", str(exc) or type(exc).__name__),
    )


@app.middleware("http")
async def record_request_metrics(request: Request, call_next):
    start = time.time()
    response = await call_next(request)

    # Prometheus counters (best-effort)
    try:
        route = request.scope.get("route")
        endpoint = getattr(route, "path", "unmatched")
        REQUESTS_TOTAL.labels(endpoint=endpoint, status=str(response.status_code)).inc()
        REQUEST_LATENCY_SECONDS.labels(endpoint=endpoint).observe(time.time() - start)
    except Exception:
        pass

    return response


@app.on_event("startup")
async def startup() -> None:
    if db.DATABASE_URL:
        await db.init_db_pool()
        await db.init_schema()
        state.store = PostgresStore()
        logger.info("Using PostgreSQL store")
    else:
        logger.warning("DATABASE_URL not set. Using in-memory store (data is lost on restart).")
        state.store = InMemoryStore()

    state.llm_client = LLMClient()
    state.delivery = build_delivery()
    state.pdf_renderer = PlaywrightPdfRenderer()
    logger.info("Task agent started")


@app.on_event("shutdown")
async def shutdown() -> None:
    if state.delivery is not None:
        await state.delivery.aclose()
    if state.store is not None:
        await state.store.close()
    logger.info("Task agent stopped")
