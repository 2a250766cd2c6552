"""
Simple tests to verify security validation is working correctly.
Run with: python -m pytest explainer_gateway/shared/utils/test_security.py -v
"""

import pytest
from .security import (
    SecurityValidationError,
    count_proxy_headers,
    escape_text,
    extract_client_ip,
    is_public_ip,
    validate_client_id,
    validate_origin,
    sanitize_prompt_for_logging
)


class TestSecurityValidation:
    """Test suite for security validation functions."""

    def test_client_id_validation(self):
        """Test client ID validation."""
        # Valid client IDs
        assert validate_client_id("widget_12345") == "widget_12345"
        assert validate_client_id("abc-def-123") == "abc-def-123"

        # Invalid client IDs
        with pytest.raises(SecurityValidationError):
            validate_client_id("")  # Empty

        with pytest.raises(SecurityValidationError):
            validate_client_id("a" * 200)  # Too long

        with pytest.raises(SecurityValidationError):
            validate_client_id("client id with spaces")  # Invalid chars

    def test_origin_validation(self):
        """Test origin validation."""
        assert validate_origin("https://example.com/") == "https://example.com"

        with pytest.raises(SecurityValidationError):
            validate_origin("")

        with pytest.raises(SecurityValidationError):
            validate_origin("not an origin")

    def test_text_escaping(self):
        """Test text escaping prevents HTML injection."""
        escaped = escape_text('<script>alert("xss")</script>')
        assert '&lt;script&gt;' in escaped
        assert '<script>' not in escaped

        assert escape_text(None) == ""
        assert len(escape_text("x" * 5000, max_length=10)) == 10

    def test_public_ip_detection(self):
        assert is_public_ip("8.8.8.8")
        assert not is_public_ip("10.0.0.1")
        assert not is_public_ip("127.0.0.1")
        assert not is_public_ip("not-an-ip")

    def test_client_ip_ignores_proxy_headers_by_default(self):
        """Spoofed forwarding headers must not change the rate-limit key."""
        headers = {"x-forwarded-for": "8.8.8.8"}
        assert extract_client_ip("203.0.113.7", headers) == "203.0.113.7"

    def test_client_ip_uses_first_public_forwarded_address_when_trusted(self):
        headers = {"x-forwarded-for": "10.0.0.2, 8.8.4.4, 1.1.1.1"}
        assert extract_client_ip("10.0.0.1", headers, trust_proxy_headers=True) == "8.8.4.4"

    def test_client_ip_fallback(self):
        assert extract_client_ip(None) == "0.0.0.0"
        assert extract_client_ip("garbage") == "0.0.0.0"

    def test_proxy_header_count(self):
        headers = {"x-forwarded-for": "1.2.3.4", "x-real-ip": "1.2.3.4", "client-ip": ""}
        assert count_proxy_headers(headers) == 2
        assert count_proxy_headers({}) == 0

    def test_prompt_sanitization_for_logging(self):
        """Test prompt sanitization for safe logging."""
        # Test newline removal
        prompt = "Line 1\nLine 2\rLine 3"
        sanitized = sanitize_prompt_for_logging(prompt)
        assert '\n' not in sanitized
        assert '\r' not in sanitized

        # Test truncation
        long_prompt = "x" * 200
        sanitized = sanitize_prompt_for_logging(long_prompt, max_length=50)
        assert len(sanitized) <= 53  # 50 + "..."

        # Test HTML escaping
        html_prompt = '<script>alert("xss")</script>'
        sanitized = sanitize_prompt_for_logging(html_prompt)
        assert '<script>' not in sanitized


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
