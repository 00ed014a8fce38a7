import hmac
import logging
from typing import Optional

from fastapi import Header

import app.config.config as configs
from app.service.errors import UnauthorizedError

logger = logging.getLogger(__name__)


def is_valid_api_key(provided: Optional[str]) -> bool:
    expected = configs.api_key()
    if not expected:
        return True
    return hmac.compare_digest(expected.encode(), (provided or "").encode())


def require_api_key(x_api_key: Optional[str] = Header(default=None, alias="X-API-Key")) -> None:
    if not is_valid_api_key(x_api_key):
        logger.warning("invalid or missing api key")
        raise UnauthorizedError("Invalid or missing API key")
