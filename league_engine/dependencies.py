import secrets
from typing import Optional
from fastapi import Header, HTTPException, status

from . import config


async def require_api_key(x_api_key: Optional[str] = Header(default=None)) -> None:
    """Guard for the scheduler-facing task endpoints."""
    expected = config.TASKS_API_KEY
    if not expected or not x_api_key or not secrets.compare_digest(x_api_key, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key"
        )
