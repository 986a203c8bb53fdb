from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from fdcatalog.core.config import settings
from fdcatalog.core.security import decode_token
from typing import Dict
import logging

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")

# Extracts and validates the JWT bearer token and returns the caller's claims
async def get_current_user(token: str = Depends(oauth2_scheme)) -> Dict:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    payload = decode_token(token)
    if payload is None:
        logger.warning("Token validation failed")
        raise credentials_exception

    subject = payload.get("sub")
    if subject is None:
        logger.debug("No 'sub' field in token payload.")
        raise credentials_exception

    return {
        "sub": subject,
        "role": payload.get("role"),
        "branch": payload.get("branch"),
    }

# Validates that the current user has admin privileges
async def get_admin_user(current_user: Dict = Depends(get_current_user)) -> Dict:
    if current_user.get("role") != settings.ADMIN_ROLE:
        logger.warning("Forbidden: %s (role=%s) attempted an admin operation", current_user.get("sub"), current_user.get("role"))
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Administrator privileges required",
        )
    return current_user
