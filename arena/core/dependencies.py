"""
FastAPI dependencies: Firebase authentication, admin and webhook guards
"""
import hmac
import logging
import os
from typing import Dict, Optional

import firebase_admin
from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from firebase_admin import auth, credentials

from arena.core.config import settings
from arena.services.operations import TournamentOperations, operations

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def _ensure_firebase_initialized():
    """
    Ensure Firebase Admin SDK is initialized before use
    Raises RuntimeError if not initialized
    """
    if not firebase_admin._apps:
        if not os.path.exists(settings.GOOGLE_APPLICATION_CREDENTIALS):
            raise RuntimeError(
                f"Firebase Admin SDK not initialized and credentials file not found: "
                f"{settings.GOOGLE_APPLICATION_CREDENTIALS}"
            )
        cred = credentials.Certificate(settings.GOOGLE_APPLICATION_CREDENTIALS)
        firebase_admin.initialize_app(cred)
        logger.info("Firebase Admin SDK initialized successfully")


def verify_firebase_token(id_token: str) -> Dict:
    """
    Verify Firebase ID token and return decoded token

    Raises:
        ValueError: If token is invalid or expired
    """
    _ensure_firebase_initialized()

    try:
        return auth.verify_id_token(id_token)
    except auth.ExpiredIdTokenError as e:
        raise ValueError(f"Firebase token expired: {str(e)}")
    except auth.InvalidIdTokenError as e:
        raise ValueError(f"Invalid Firebase token: {str(e)}")


async def get_current_user_id(
    bearer: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> str:
    """Firebase uid of the caller"""
    if bearer is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        decoded_token = verify_firebase_token(bearer.credentials)
    except ValueError as e:
        logger.warning(f"Rejected token: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return decoded_token["uid"]


async def require_admin(user_id: str = Depends(get_current_user_id)) -> str:
    if user_id not in settings.ADMIN_UID_SET:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user_id


async def verify_webhook_secret(x_webhook_secret: str = Header(..., alias="X-Webhook-Secret")) -> None:
    if not hmac.compare_digest(x_webhook_secret, settings.PAYMENT_WEBHOOK_SECRET):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid webhook signature")


def get_operations() -> TournamentOperations:
    return operations
