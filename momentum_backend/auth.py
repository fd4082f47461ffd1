from fastapi import HTTPException, Request, Security, status
from fastapi.security import APIKeyHeader
import os

from momentum_backend.exceptions import AuthenticationException, ForbiddenException

# API key shared with the client; set MOMENTUM_API_KEY in production
API_KEY = os.getenv("MOMENTUM_API_KEY", "your-secret-key-change-me")

# Operator key for engine settings writes; unset means nobody may write them
ADMIN_KEY = os.getenv("MOMENTUM_ADMIN_KEY")

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)
admin_key_header = APIKeyHeader(name="X-Admin-Key", auto_error=False)

async def verify_api_key(api_key: str = Security(api_key_header)):
    """Verify API key for authentication"""
    if not api_key or api_key != API_KEY:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API Key"
        )
    return api_key

async def verify_admin_key(admin_key: str = Security(admin_key_header)):
    """Verify the operator key, separate from end-user identity"""
    if not ADMIN_KEY or admin_key != ADMIN_KEY:
        raise ForbiddenException("Engine settings can only be changed by an operator")
    return admin_key

def get_caller_id(request: Request) -> str:
    """Caller identity issued by the external auth layer"""
    caller_id = request.headers.get("x-user-id")
    if not caller_id or not caller_id.strip():
        raise AuthenticationException("Missing X-User-Id header")
    return caller_id.strip()
