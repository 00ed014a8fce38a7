import logging
from typing import Any

import app.config.config as configs
from app.client.n8n.webhook import ping_webhook, trigger_webhook
from app.model.webhook.webhook_request import WebhookRequest

logger = logging.getLogger(__name__)


async def trigger_service(req: WebhookRequest, request_id: str) -> Any:
    logger.info("triggering webhook request_id=%s url=%s", request_id, configs.N8N_WEBHOOK_URL)
    return await trigger_webhook(req.model_dump(exclude_none=True), request_id)


async def webhook_connected() -> bool:
    return await ping_webhook(configs.N8N_WEBHOOK_URL)


async def chat_webhook_connected() -> bool:
    return await ping_webhook(configs.N8N_CHAT_WEBHOOK_URL, request_type="chat")
