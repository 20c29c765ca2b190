"""
Admin secret authentication.
The shared secret is stored as a bcrypt hash; clients send it verbatim as a bearer token.
"""
from typing import Optional

import bcrypt
from fastapi import Header, HTTPException, status

from portfolio.config import settings


def hash_password(password: str, rounds: int = 12) -> str:
    """
    Hash a password using bcrypt.
    Used for generating ADMIN_PASSWORD_HASH.
    """
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, hashed_password: str) -> bool:
    """
    Verify a password against a bcrypt hash.
    Malformed hashes never match.
    """
    try:
        return bcrypt.checkpw(
            password.encode('utf-8'),
            hashed_password.encode('utf-8')
        )
    except ValueError:
        return False


def verify_admin_password(password: str) -> bool:
    """
    Verify the admin secret against the stored hash.

    Raises:
        ValueError: If ADMIN_PASSWORD_HASH is not configured
    """
    if not settings.ADMIN_PASSWORD_HASH:
        raise ValueError("ADMIN_PASSWORD_HASH not configured")

    return verify_password(password, settings.ADMIN_PASSWORD_HASH)


def require_admin(
    authorization: Optional[str] = Header(None, description="Bearer <admin secret>")
) -> bool:
    """
    FastAPI dependency guarding admin routes.

    Raises:
        HTTPException: 401 if the token is missing or wrong, 500 if auth is not configured
    """
    token = None
    if authorization:
        parts = authorization.split(None, 1)
        if len(parts) == 2 and parts[0].lower() == "bearer":
            token = parts[1].strip()

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "Missing token", "detail": "Admin access requires a bearer token"},
            headers={"WWW-Authenticate": "Bearer"}
        )

    try:
        if not verify_admin_password(token):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail={"error": "Invalid password", "detail": "Admin access denied"},
                headers={"WWW-Authenticate": "Bearer"}
            )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Authentication not configured", "detail": str(e)}
        )

    return True
