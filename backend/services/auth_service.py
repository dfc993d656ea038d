"""
Authentication service for Repurpose
Local email/password accounts with JWT session cookies
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from fastapi import Cookie, HTTPException, Response

from core.config import settings
from core.constants import SESSION_COOKIE_NAME
from core.exceptions import AuthenticationError, DuplicateResourceError
from core.security import PasswordHasher
from domain.schemas import LoginRequest, RegisterRequest, UserProfile
from infrastructure.database import get_db_session
from infrastructure.repositories import UserRepository

logger = logging.getLogger(__name__)


class AuthService:
    """Account registration, sign in and session tokens"""

    def __init__(self) -> None:
        self.jwt_secret = settings.jwt_secret.encode("utf-8")
        self.jwt_algorithm = settings.jwt_algorithm
        self.cookie_name = SESSION_COOKIE_NAME

    def register(self, request: RegisterRequest) -> UserProfile:
        """
        Create a local account

        Raises:
            DuplicateResourceError: If the email is already registered
        """
        with get_db_session() as db:
            users = UserRepository(db)
            if users.get_by_email(request.email):
                raise DuplicateResourceError("An account with this email already exists")

            user = users.create(
                email=request.email,
                password_hash=PasswordHasher.hash_password(request.password),
                first_name=request.first_name,
                last_name=request.last_name,
            )
            profile = UserProfile.model_validate(user)

        logger.info(f"Registered user {profile.id}")
        return profile

    def authenticate(self, request: LoginRequest) -> UserProfile:
        """
        Check email and password

        Raises:
            AuthenticationError: On unknown email or wrong password
        """
        with get_db_session() as db:
            user = UserRepository(db).get_by_email(request.email)
            if not user or not PasswordHasher.verify_password(request.password, user.password_hash):
                raise AuthenticationError("Invalid email or password")
            return UserProfile.model_validate(user)

    def create_jwt_token(self, user: UserProfile) -> str:
        """Create a session token carrying only the user id and email"""
        now = datetime.now(tz=timezone.utc)
        session_id = secrets.token_urlsafe(32)

        payload = {
            "user_id": user.id,
            "email": user.email,
            "session_id": session_id,
            "exp": now + timedelta(hours=settings.jwt_expiry_hours),
            "iat": now,
            "iss": settings.app_name,
            "aud": settings.app_name,
        }

        token = jwt.encode(payload, self.jwt_secret, algorithm=self.jwt_algorithm)
        logger.info(f"Created JWT token for user {user.id} (session: {session_id[:8]}...)")
        return token

    def verify_jwt_token(self, token: Optional[str]) -> Optional[Dict[str, Any]]:
        """
        Verify and decode JWT token

        Returns:
            Decoded payload if valid, None otherwise
        """
        if not token:
            return None

        try:
            payload = jwt.decode(
                token,
                self.jwt_secret,
                algorithms=[self.jwt_algorithm],
                audience=settings.app_name,
                issuer=settings.app_name,
                leeway=timedelta(seconds=10),
            )
        except jwt.ExpiredSignatureError:
            logger.debug("JWT token expired")
            return None
        except jwt.InvalidTokenError as e:
            logger.warning(f"JWT token invalid: {e}")
            return None

        if not all(field in payload for field in ("user_id", "session_id")):
            logger.warning("JWT token missing required fields")
            return None

        return dict(payload)

    def set_auth_cookie(self, response: Response, token: str) -> None:
        """Set JWT token as HTTP-only cookie"""
        response.set_cookie(
            key=self.cookie_name,
            value=token,
            max_age=settings.jwt_expiry_hours * 60 * 60,
            httponly=True,
            secure=settings.secure_cookies,
            samesite="lax",
            path="/",
        )

    def clear_auth_cookie(self, response: Response) -> None:
        response.delete_cookie(key=self.cookie_name, path="/")

    def get_current_user(self, token: Optional[str]) -> UserProfile:
        """
        Resolve the signed-in user from the session cookie

        Raises:
            HTTPException: 401 if not authenticated or the account is gone
        """
        if token is None:
            raise HTTPException(status_code=401, detail="Not authenticated")

        payload = self.verify_jwt_token(token)
        if not payload:
            raise HTTPException(status_code=401, detail="Invalid or expired token")

        with get_db_session() as db:
            user = UserRepository(db).get_by_id(payload["user_id"])
            if user is None:
                raise HTTPException(status_code=401, detail="Not authenticated")
            return UserProfile.model_validate(user)


# Global auth service instance
auth_service = AuthService()


# Dependency for FastAPI endpoints
async def get_current_user(
    repurpose_session: Optional[str] = Cookie(None),
) -> UserProfile:
    """FastAPI dependency for getting current user"""
    return auth_service.get_current_user(repurpose_session)
