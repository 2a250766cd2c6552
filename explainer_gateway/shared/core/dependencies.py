"""
Dependency injection for FastAPI without global state.
"""
import hmac
from functools import lru_cache
from typing import Annotated, Optional

import httpx
import jwt
from fastapi import Depends, Header, Request
from loguru import logger

from .config import Settings
from .connection_manager import ConnectionManager
from .exceptions import AuthenticationError, ServiceUnavailableError
from .initializer import Initializer
from ..models.internal import AnonymousIdentity, AuthenticatedIdentity, UserIdentity
from ..providers import ProviderRegistry
from ..services.gateway import ExplanationGateway
from ..services.security import RequestMetadata
from ..utils.security import (
    SecurityValidationError,
    count_proxy_headers,
    extract_client_ip,
    validate_client_id,
)


# Configuration (cached at module level for efficiency)
@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def get_app_settings(request: Request) -> Settings:
    """Settings the running app was created with."""
    settings = getattr(request.app.state, 'settings', None)
    return settings if settings is not None else get_settings()


# Shared resources (from app.state)
async def get_connection_manager(request: Request) -> ConnectionManager:
    """
    Get connection manager from app state.
    The ConnectionManager holds all shared expensive resources.
    """
    if not hasattr(request.app.state, 'connection_manager'):
        raise RuntimeError("ConnectionManager not found in app.state. Is the app properly initialized?")
    return request.app.state.connection_manager


async def get_http_client(
    conn_manager: Annotated[ConnectionManager, Depends(get_connection_manager)]
) -> httpx.AsyncClient:
    """Get HTTP client from shared pool."""
    return conn_manager.get_http_client()


async def get_initializer(request: Request) -> Initializer:
    """
    Get Initializer from app state.
    The Initializer holds the validated explainer settings and the gateway.
    """
    if not hasattr(request.app.state, 'initializer'):
        raise RuntimeError("Initializer not found in app.state. Is the app properly initialized?")
    return request.app.state.initializer


async def get_gateway(
    initializer: Annotated[Initializer, Depends(get_initializer)]
) -> ExplanationGateway:
    return initializer.get_gateway()


async def get_registry(
    initializer: Annotated[Initializer, Depends(get_initializer)]
) -> ProviderRegistry:
    return initializer.registry


# Caller identity
def decode_user_token(token: str, settings: Settings) -> str:
    """
    Validate a bearer JWT and return its subject.

    Raises:
        AuthenticationError: If the token is expired, invalid or has no subject
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm]
        )
    except jwt.ExpiredSignatureError:
        logger.warning("JWT token expired")
        raise AuthenticationError("Token expired")
    except jwt.InvalidTokenError as e:
        logger.warning(f"JWT validation failed: {str(e)}")
        raise AuthenticationError("Invalid token")

    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationError("Invalid token claims: missing user ID")

    return str(user_id)


async def get_identity(
    request: Request,
    settings: Annotated[Settings, Depends(get_app_settings)],
    authorization: Annotated[Optional[str], Header()] = None
) -> UserIdentity:
    """
    Resolve the rate-limit identity.

    A bearer token makes the caller authenticated; a malformed or invalid
    token is an error rather than a silent downgrade to anonymous.
    """
    if authorization:
        if not authorization.startswith("Bearer "):
            raise AuthenticationError("Invalid authorization header")
        user_id = decode_user_token(authorization[len("Bearer "):], settings)
        return AuthenticatedIdentity(id=user_id)

    peer_host = request.client.host if request.client else None
    ip = extract_client_ip(peer_host, request.headers, settings.trust_proxy_headers)
    return AnonymousIdentity(ip=ip)


def build_request_metadata(
    request: Request,
    client_id: Optional[str],
    timestamp: Optional[float]
) -> RequestMetadata:
    """Collect the transport facts the request guard checks."""
    if client_id is not None:
        try:
            client_id = validate_client_id(client_id)
        except SecurityValidationError as e:
            logger.debug(f"Discarding client id: {e}")
            client_id = None

    return RequestMetadata(
        method=request.method,
        origin=request.headers.get("origin"),
        user_agent=request.headers.get("user-agent"),
        client_id=client_id,
        timestamp=timestamp,
        proxy_header_count=count_proxy_headers(request.headers),
    )


# Admin guard
async def require_admin(
    settings: Annotated[Settings, Depends(get_app_settings)],
    x_admin_token: Annotated[Optional[str], Header()] = None
) -> None:
    """Allow the request only with the configured admin token."""
    if not settings.admin_token:
        raise ServiceUnavailableError("Admin")

    if not x_admin_token or not hmac.compare_digest(
        x_admin_token.encode("utf-8"), settings.admin_token.encode("utf-8")
    ):
        logger.warning("Rejected admin request with missing or wrong token")
        raise AuthenticationError("Invalid admin token")


# Type aliases for cleaner code in route handlers
AppSettings = Annotated[Settings, Depends(get_app_settings)]
HttpClient = Annotated[httpx.AsyncClient, Depends(get_http_client)]
GatewayDep = Annotated[ExplanationGateway, Depends(get_gateway)]
RegistryDep = Annotated[ProviderRegistry, Depends(get_registry)]
IdentityDep = Annotated[UserIdentity, Depends(get_identity)]
