import logging
from functools import lru_cache
from typing import Optional

from google.api_core import exceptions as google_api_exceptions
from google.cloud import secretmanager

logger = logging.getLogger('uvicorn.error')


@lru_cache(maxsize=None)
def get_secret(secret_id: str) -> str:
    client = secretmanager.SecretManagerServiceClient()
    response = client.access_secret_version(request={"name": secret_id})
    return response.payload.data.decode("UTF-8")


def get_optional_secret(secret_id: str) -> Optional[str]:
    """Like get_secret, but returns None when the secret or version does not exist."""
    try:
        return get_secret(secret_id)
    except google_api_exceptions.NotFound:
        logger.warning(f"Secret {secret_id} is not configured.")
        return None
