# cart_recovery/api/deps.py
import secrets

from fastapi import Depends, HTTPException, status
from fastapi.security import APIKeyHeader

from cart_recovery.core.config import settings


internal_api_key_header = APIKeyHeader(
    name=settings.INTERNAL_API_KEY_HEADER,
    description="Shared secret of the host marketplace.",
    auto_error=False,
)


def require_internal_api_key(api_key: str | None = Depends(internal_api_key_header)) -> None:
    if not api_key or not secrets.compare_digest(api_key, settings.INTERNAL_API_KEY):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing internal API key",
        )
