"""
Admin login check.
The client keeps the secret itself as its bearer token, so this only confirms it matches.
"""
from fastapi import APIRouter, HTTPException, status
import logging

from portfolio.schemas import AuthRequest, SuccessResponse
from portfolio.utils.auth import verify_admin_password

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/auth", response_model=SuccessResponse)
async def authenticate(request: AuthRequest):
    """
    Check the admin password.

    Raises:
        HTTPException: 401 if the password is wrong, 500 if auth is not configured
    """
    try:
        valid = verify_admin_password(request.password)
    except ValueError as e:
        logger.error(f"Admin login attempted without configured hash: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Authentication not configured", "detail": str(e)}
        )

    if not valid:
        logger.warning("Rejected admin login with invalid password")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "Invalid password", "detail": "Invalid password"}
        )

    logger.info("Admin login succeeded")
    return SuccessResponse()
