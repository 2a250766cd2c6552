"""
Security validation utilities using industry-standard libraries.
"""

import html
import ipaddress
import re
from typing import Mapping, Optional

import validators
from markupsafe import escape


MAX_CLIENT_ID_LENGTH = 128
MAX_DISPLAY_LENGTH = 1000

# Safe pattern for client identifiers (alphanumeric, underscore, dash only)
SAFE_ID_PATTERN = re.compile(r'^[a-zA-Z0-9_-]+$')

# Headers a client can use to claim a different address
PROXY_IP_HEADERS = ("x-forwarded-for", "x-real-ip", "client-ip")


class SecurityValidationError(ValueError):
    """Raised when security validation fails."""
    pass


def validate_client_id(client_id: str) -> str:
    """
    Validate a client-generated request identifier.

    Args:
        client_id: The identifier to validate

    Returns:
        The validated identifier

    Raises:
        SecurityValidationError: If the identifier is empty, too long or has unsafe characters
    """
    if not client_id:
        raise SecurityValidationError("Client ID cannot be empty")

    if len(client_id) > MAX_CLIENT_ID_LENGTH:
        raise SecurityValidationError(f"Client ID too long (max {MAX_CLIENT_ID_LENGTH} characters)")

    if not SAFE_ID_PATTERN.match(client_id):
        raise SecurityValidationError("Client ID contains invalid characters (only alphanumeric, underscore, and dash allowed)")

    return client_id


def validate_origin(origin: str) -> str:
    """
    Validate an allowed-origin entry using the validators library.

    Raises:
        SecurityValidationError: If the origin is not a URL
    """
    if not origin:
        raise SecurityValidationError("Origin cannot be empty")

    origin = origin.strip().rstrip("/")
    if not validators.url(origin, simple_host=True):
        raise SecurityValidationError(f"Invalid origin: {origin}")

    return origin


def is_valid_ip(value: str) -> bool:
    return bool(validators.ipv4(value) or validators.ipv6(value))


def is_public_ip(value: str) -> bool:
    """True for a syntactically valid, globally routable address."""
    if not is_valid_ip(value):
        return False
    return ipaddress.ip_address(value).is_global


def count_proxy_headers(headers: Mapping[str, str]) -> int:
    return sum(1 for name in PROXY_IP_HEADERS if headers.get(name))


def extract_client_ip(
    peer_host: Optional[str],
    headers: Optional[Mapping[str, str]] = None,
    trust_proxy_headers: bool = False
) -> str:
    """
    Resolve the address used to key anonymous rate limits.

    Proxy headers are only consulted when the deployment sits behind a
    trusted proxy; the first public address found wins. Otherwise the
    socket peer address is used.

    Args:
        peer_host: Address of the TCP peer
        headers: Request headers (case-insensitive mapping)
        trust_proxy_headers: Whether proxy headers may be believed

    Returns:
        Client IP, or "0.0.0.0" when nothing usable is available
    """
    if trust_proxy_headers and headers:
        for name in ("client-ip", "x-forwarded-for", "x-real-ip"):
            value = headers.get(name)
            if not value:
                continue
            for candidate in value.split(","):
                candidate = candidate.strip()
                if is_public_ip(candidate):
                    return candidate

    if peer_host and is_valid_ip(peer_host):
        return peer_host

    return "0.0.0.0"


def escape_text(content: Optional[str], max_length: int = MAX_DISPLAY_LENGTH) -> str:
    """
    HTML-escape untrusted text (e.g. a provider error) for display, truncated.
    """
    if not content:
        return ""
    return str(escape(content[:max_length]))


def sanitize_prompt_for_logging(prompt: str, max_length: int = 100) -> str:
    """
    Sanitize user text for safe logging (escape, strip newlines, truncate).

    Args:
        prompt: The text to sanitize
        max_length: Maximum length for logging

    Returns:
        Sanitized text safe for logging
    """
    if not prompt:
        return ""

    # Escape HTML and remove newlines for logging
    sanitized = html.escape(prompt).replace('\n', ' ').replace('\r', ' ')

    # Truncate for logging
    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length] + "..."

    return sanitized
