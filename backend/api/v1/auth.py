"""
Authentication API Endpoints - FastAPI routes for local accounts
"""

from typing import Dict

from fastapi import APIRouter, Depends, Request, Response, status

from api.dependencies import get_authenticated_user, handle_service_error, setup_request_context
from api.middleware import get_client_ip
from core.audit import log_auth_failure, log_auth_success, log_logout, log_registration
from core.exceptions import AuthenticationError, RepurposeException
from core.logging import get_logger, security_logger
from core.security import SecurityUtils
from domain.schemas import LoginRequest, RegisterRequest, UserProfile, UserResponse
from services.auth_service import auth_service

logger = get_logger("auth_api")
router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterRequest,
    response: Response,
    _: str = Depends(setup_request_context),
) -> UserResponse:
    """Create an account and sign it in"""
    try:
        user = auth_service.register(body)
    except RepurposeException as e:
        raise handle_service_error(e)

    auth_service.set_auth_cookie(response, auth_service.create_jwt_token(user))
    log_registration(user.id)

    return UserResponse(user=user)


@router.post("/login", response_model=UserResponse)
async def login(
    body: LoginRequest,
    request: Request,
    response: Response,
    _: str = Depends(setup_request_context),
) -> UserResponse:
    """Sign in with email and password"""
    client_ip = get_client_ip(request)
    logged_email = SecurityUtils.sanitize_log_data(body.email, max_length=255)

    try:
        user = auth_service.authenticate(body)
    except AuthenticationError as e:
        security_logger.log_authentication_attempt(logged_email, False, client_ip)
        log_auth_failure(details={"reason": "invalid_credentials"})
        raise handle_service_error(e)

    auth_service.set_auth_cookie(response, auth_service.create_jwt_token(user))

    security_logger.log_authentication_attempt(logged_email, True, client_ip)
    log_auth_success(user.id)

    return UserResponse(user=user)


@router.post("/logout")
async def logout(
    response: Response,
    current_user: UserProfile = Depends(get_authenticated_user),
) -> Dict[str, bool]:
    """Clear the session cookie"""
    auth_service.clear_auth_cookie(response)
    log_logout(current_user.id)
    logger.info("User signed out", extra={"user_id": current_user.id})
    return {"success": True}


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: UserProfile = Depends(get_authenticated_user)) -> UserResponse:
    """Get the signed-in user"""
    return UserResponse(user=current_user)
