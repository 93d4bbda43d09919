from fastapi import HTTPException, Security, status
from fastapi.security import APIKeyHeader
import os

# Fallback for local development only; set FOCUSBOT_API_KEY in production
DEFAULT_API_KEY = "your-secret-key-change-me"

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


def get_api_key() -> str:
    return os.getenv("FOCUSBOT_API_KEY", DEFAULT_API_KEY)


async def verify_api_key(api_key: str = Security(api_key_header)):
    """Verify API key for authentication"""
    if not api_key or api_key != get_api_key():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API Key"
        )
    return api_key
