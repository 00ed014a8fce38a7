import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parents[2] / ".env")


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise RuntimeError(f"Invalid integer for env var {name}: {raw!r}") from e


N8N_WEBHOOK_URL = os.getenv("N8N_WEBHOOK_URL", "http://localhost:5678/webhook/trigger")
N8N_CHAT_WEBHOOK_URL = os.getenv("N8N_CHAT_WEBHOOK_URL") or N8N_WEBHOOK_URL
N8N_TIMEOUT_SECONDS = _get_int("N8N_TIMEOUT_SECONDS", 30)

# session tuning
CHAT_SESSION_TIMEOUT_MINUTES = _get_int("CHAT_SESSION_TIMEOUT_MINUTES", 60)
CHAT_CONTEXT_WINDOW_SIZE = _get_int("CHAT_CONTEXT_WINDOW_SIZE", 10)
CHAT_SESSION_SWEEP_INTERVAL_SECONDS = _get_int("CHAT_SESSION_SWEEP_INTERVAL_SECONDS", 0)

CORS_ALLOWED_ORIGINS = [o.strip() for o in os.getenv("CORS_ALLOWED_ORIGINS", "*").split(",") if o.strip()]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

USER_AGENT = "n8n-chat-relay/1.0"


def api_key() -> str:
    # read per request so the key can rotate without a restart
    return os.getenv("N8N_API_KEY", "").strip()
