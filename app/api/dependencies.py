# ============================================================================
# FILE: app/api/dependencies.py
# Authentication and service dependencies
# ============================================================================
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import Optional
from datetime import datetime, timedelta, timezone
from jose import JWTError, jwt

from app.config.database import get_db
from app.config.settings import settings
from app.services.booking.booking_service import BookingService
from app.services.notification.notifier import CeleryNotifier, Notifier
from app.services.order.order_schedule_service import OrderScheduleService
from app.services.subscription.subscription_checker import DatabaseSubscriptionChecker, SubscriptionChecker

# ============================================================================
# Security Schemes
# ============================================================================

jwt_security = HTTPBearer(
    scheme_name="JWT Bearer Token",
    description="Enter your JWT access token"
)


# ============================================================================
# JWT Token Functions
# ============================================================================

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token.

    Args:
        data: Dictionary with claims (should include 'sub' with user_id)
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string
    """
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=30))

    to_encode.update({
        "exp": expire,
        "iat": datetime.now(timezone.utc),
        "type": "access"
    })

    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def verify_access_token(token: str) -> dict:
    """
    Verify and decode a JWT access token.

    Raises:
        HTTPException: If token is invalid or expired
    """
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM]
        )
    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Could not validate credentials: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if payload.get("type") != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return payload


# ============================================================================
# JWT Authentication Dependencies
# ============================================================================

async def get_current_user_id(
        credentials: HTTPAuthorizationCredentials = Depends(jwt_security)
) -> int:
    """
    Acting user id from the bearer token's 'sub' claim.
    Accounts are managed elsewhere; the booking engine trusts the token.
    """
    payload = verify_access_token(credentials.credentials)

    user_id_str = payload.get("sub")
    if user_id_str is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return int(user_id_str)
    except (TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user ID in token",
            headers={"WWW-Authenticate": "Bearer"},
        )


# ============================================================================
# Collaborators and services
# ============================================================================

def get_notifier() -> Notifier:
    return CeleryNotifier()


def get_subscription_checker(db: Session = Depends(get_db)) -> SubscriptionChecker:
    return DatabaseSubscriptionChecker(db)


def get_booking_service(
        db: Session = Depends(get_db),
        notifier: Notifier = Depends(get_notifier),
        subscription_checker: SubscriptionChecker = Depends(get_subscription_checker)
) -> BookingService:
    return BookingService(db, notifier=notifier, subscription_checker=subscription_checker)


def get_order_schedule_service(
        db: Session = Depends(get_db),
        notifier: Notifier = Depends(get_notifier)
) -> OrderScheduleService:
    return OrderScheduleService(db, notifier=notifier)
