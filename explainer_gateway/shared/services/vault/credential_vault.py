"""
Credential vault - integrity-tagged at-rest storage for provider API keys.
"""

import base64
import binascii
import hashlib
import hmac
from typing import Dict, Optional

from loguru import logger

from ...clients.base import BaseStore
from ...providers.registry import ProviderRegistry


CREDENTIAL_PREFIX = "explainer:credential"


class CredentialVault:
    """
    Encrypts and decrypts provider API keys.

    Stored form is ``base64(key + "|" + hmac_sha256(secret, key))``. The tag
    binds a stored value to this deployment's secret; a tampered or foreign
    value decrypts to the empty string, which callers treat as "no credential
    configured".
    """

    def __init__(
        self,
        secret: str,
        registry: ProviderRegistry,
        store: Optional[BaseStore] = None,
        fallback_keys: Optional[Dict[str, Optional[str]]] = None
    ):
        """
        Args:
            secret: Process-wide secret for integrity tags
            registry: Provider registry, used for key-format checks
            store: Store holding encrypted credentials
            fallback_keys: provider key -> key from the environment (plaintext or encrypted)
        """
        if not secret:
            raise ValueError("Credential secret must not be empty")
        self._secret = secret.encode("utf-8")
        self.registry = registry
        self.store = store
        self.fallback_keys = {k: v for k, v in (fallback_keys or {}).items() if v}

    def _tag(self, plaintext: str) -> str:
        return hmac.new(self._secret, plaintext.encode("utf-8"), hashlib.sha256).hexdigest()

    def is_valid_key_format(self, api_key: Optional[str]) -> bool:
        return self.registry.matches_any_key_format(api_key)

    @staticmethod
    def is_encrypted(value: Optional[str]) -> bool:
        """Structural check: valid base64 whose decoded form has exactly one separator."""
        if not value:
            return False
        try:
            decoded = base64.b64decode(value, validate=True).decode("utf-8")
        except (binascii.Error, ValueError, UnicodeDecodeError):
            return False
        return decoded.count("|") == 1

    def encrypt(self, plaintext: Optional[str]) -> str:
        """
        Encrypt an API key for storage.

        Returns:
            The encrypted value, the input unchanged if it is already
            encrypted, or "" for empty input or an unrecognized key format
        """
        if not plaintext:
            return ""

        if self.is_encrypted(plaintext):
            return plaintext

        if not self.is_valid_key_format(plaintext):
            logger.warning(f"Refusing to encrypt key with invalid format (prefix {plaintext[:3]!r})")
            return ""

        payload = f"{plaintext}|{self._tag(plaintext)}"
        return base64.b64encode(payload.encode("utf-8")).decode("ascii")

    def decrypt(self, ciphertext: Optional[str]) -> str:
        """
        Decrypt a stored API key. Never raises.

        Returns:
            The API key, or "" when the value is malformed, tampered with or
            tagged under a different secret
        """
        if not ciphertext:
            return ""

        # Legacy plaintext storage
        if self.is_valid_key_format(ciphertext):
            return ciphertext

        try:
            decoded = base64.b64decode(ciphertext, validate=True).decode("utf-8")
        except (binascii.Error, ValueError, UnicodeDecodeError):
            logger.warning("Stored credential is not valid base64")
            return ""

        parts = decoded.split("|")
        if len(parts) != 2:
            logger.warning("Stored credential has an unexpected structure")
            return ""

        api_key, tag = parts
        if not hmac.compare_digest(tag, self._tag(api_key)):
            logger.warning("Stored credential failed integrity check")
            return ""

        if not self.is_valid_key_format(api_key):
            logger.warning("Decrypted credential has an invalid key format")
            return ""

        return api_key

    @staticmethod
    def storage_key(provider_key: str) -> str:
        return f"{CREDENTIAL_PREFIX}:{provider_key}"

    async def store_credential(self, provider_key: str, api_key: str) -> bool:
        """
        Encrypt and persist the key for one provider.

        Returns:
            False when the provider is unknown or the key does not match its format
        """
        provider_class = self.registry.get_provider_class(provider_key)
        if provider_class is None or self.store is None:
            return False

        if not provider_class().validate_key_format(api_key):
            return False

        encrypted = self.encrypt(api_key.strip())
        if not encrypted:
            return False

        await self.store.set(self.storage_key(self.registry.resolve_name(provider_key)), encrypted)
        logger.info(f"Stored credential for {provider_key}: {self.mask_key(api_key)}")
        return True

    async def delete_credential(self, provider_key: str) -> bool:
        name = self.registry.resolve_name(provider_key)
        if name is None or self.store is None:
            return False
        return await self.store.delete(self.storage_key(name))

    async def load_credential(self, provider_key: str) -> str:
        """
        Load the decrypted key for a provider.

        The stored value wins over the environment fallback. The result is
        re-checked against the provider's own key format.

        Returns:
            The API key, or "" when none is configured
        """
        provider_class = self.registry.get_provider_class(provider_key)
        if provider_class is None:
            return ""
        provider_key = self.registry.resolve_name(provider_key)

        candidates = []
        if self.store is not None:
            candidates.append(await self.store.get(self.storage_key(provider_key)))
        candidates.append(self.fallback_keys.get(provider_key))

        validator = provider_class()
        for stored in candidates:
            api_key = self.decrypt(stored)
            if api_key and validator.validate_key_format(api_key):
                return api_key

        return ""

    @staticmethod
    def mask_key(api_key: Optional[str]) -> str:
        """Render a key for display, e.g. ``sk-ant-...wxyz``."""
        if not api_key:
            return ""
        if len(api_key) <= 12:
            return "*" * len(api_key)
        return f"{api_key[:7]}...{api_key[-4:]}"
