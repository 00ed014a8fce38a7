import asyncio
import logging
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import app.config.config as configs
from app.api.v1.route import api_router as MainRouter
from app.client.n8n.webhook import close_clients
from app.model.common.api_response import ApiResponse
from app.service.chat.chat import sweep_expired_conversations
from app.service.errors import RelayError, UnauthorizedError

logging.basicConfig(
    level=configs.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="n8n_chat_relay", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=configs.CORS_ALLOWED_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(router=MainRouter, prefix="/api/n8n")

_sweeper: asyncio.Task | None = None


def _envelope(status_code: int, message: str, request_id: str) -> JSONResponse:
    body = ApiResponse(success=False, message=message, request_id=request_id)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json", by_alias=True, exclude_none=True))


@app.exception_handler(RelayError)
async def relay_error_handler(_: Request, exc: RelayError) -> JSONResponse:
    request_id = str(uuid.uuid4())
    logger.error("external service error request_id=%s error=%s", request_id, exc)
    return _envelope(502, f"External service error: {exc}", request_id)


@app.exception_handler(UnauthorizedError)
async def unauthorized_handler(request: Request, exc: UnauthorizedError) -> JSONResponse:
    request_id = str(uuid.uuid4())
    logger.warning("unauthorized request_id=%s path=%s", request_id, request.url.path)
    return _envelope(401, str(exc), request_id)


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    request_id = str(uuid.uuid4())
    logger.error("unexpected error request_id=%s path=%s", request_id, request.url.path, exc_info=exc)
    return _envelope(500, "An unexpected error occurred", request_id)


async def sweep_periodically(interval_seconds: float) -> None:
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            removed = sweep_expired_conversations()
            if removed:
                logger.info("background sweep removed %s conversations", removed)
        except Exception:
            logger.exception("background sweep failed")


@app.on_event("startup")
async def start_sweeper() -> None:
    global _sweeper
    if configs.CHAT_SESSION_SWEEP_INTERVAL_SECONDS > 0:
        _sweeper = asyncio.create_task(sweep_periodically(configs.CHAT_SESSION_SWEEP_INTERVAL_SECONDS))


@app.on_event("shutdown")
async def shutdown_event() -> None:
    if _sweeper is not None:
        _sweeper.cancel()
    await close_clients()
