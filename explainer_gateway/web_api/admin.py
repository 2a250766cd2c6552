"""
Administrative endpoints: circuit control, cache and provider credentials.
All routes require the X-Admin-Token header.
"""

from fastapi import APIRouter, Depends
from loguru import logger

from ..shared.core.dependencies import GatewayDep, HttpClient, RegistryDep, require_admin
from ..shared.core.exceptions import InvalidCredentialError, InvalidProviderError
from ..shared.models.requests import CredentialTestRequest, CredentialUpdateRequest
from ..shared.models.responses import AdminActionResponse, AdminStatusResponse
from ..shared.utils.security import escape_text


router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(require_admin)]
)


@router.get("/status", response_model=AdminStatusResponse)
async def get_status(gateway: GatewayDep):
    """Circuit state, active provider and credential status."""
    circuit = await gateway.breaker.get_state()
    if circuit.reason:
        circuit = circuit.model_copy(update={"reason": escape_text(circuit.reason)})

    api_key = await gateway.vault.load_credential(gateway.provider.key)

    return AdminStatusResponse(
        enabled=not circuit.disabled,
        circuit=circuit,
        provider=gateway.provider.key,
        model=gateway.model,
        credential_configured=bool(api_key),
        masked_key=gateway.vault.mask_key(api_key) or None,
        cache=gateway.cache.get_stats()
    )


@router.post("/reenable", response_model=AdminActionResponse)
async def reenable(gateway: GatewayDep):
    """Re-enable explanations after a quota trip."""
    previous = await gateway.breaker.get_state()
    await gateway.breaker.reenable()

    return AdminActionResponse(
        success=True,
        message="AI explanations re-enabled.",
        detail={"was_disabled": previous.disabled}
    )


@router.post("/cache/clear", response_model=AdminActionResponse)
async def clear_cache(gateway: GatewayDep):
    deleted = await gateway.cache.clear()
    return AdminActionResponse(
        success=True,
        message=f"Cleared {deleted} cached explanations.",
        detail={"deleted": deleted}
    )


@router.put("/credentials/{provider}", response_model=AdminActionResponse)
async def update_credential(
    provider: str,
    body: CredentialUpdateRequest,
    gateway: GatewayDep,
    registry: RegistryDep
):
    """Encrypt and store the API key for a provider."""
    if not registry.is_provider_registered(provider):
        raise InvalidProviderError(provider)

    stored = await gateway.vault.store_credential(provider, body.api_key)
    if not stored:
        raise InvalidCredentialError(provider)

    provider_key = registry.resolve_name(provider)
    logger.info(f"Administrator updated the {provider_key} credential")
    return AdminActionResponse(
        success=True,
        message="API key saved.",
        detail={"provider": provider_key, "masked_key": gateway.vault.mask_key(body.api_key)}
    )


@router.delete("/credentials/{provider}", response_model=AdminActionResponse)
async def delete_credential(
    provider: str,
    gateway: GatewayDep,
    registry: RegistryDep
):
    if not registry.is_provider_registered(provider):
        raise InvalidProviderError(provider)

    provider_key = registry.resolve_name(provider)
    deleted = await gateway.vault.delete_credential(provider_key)
    return AdminActionResponse(
        success=deleted,
        message="API key removed." if deleted else "No stored API key."
    )


@router.post("/credentials/{provider}/test", response_model=AdminActionResponse)
async def test_credential(
    provider: str,
    body: CredentialTestRequest,
    gateway: GatewayDep,
    registry: RegistryDep,
    http_client: HttpClient
):
    """
    Check a key with a minimal live request. Without a key in the body the
    stored key for the provider is tested.
    """
    if not registry.is_provider_registered(provider):
        raise InvalidProviderError(provider)

    provider_key = registry.resolve_name(provider)
    adapter = registry.create(provider_key, timeout=gateway.provider.timeout)

    api_key = (body.api_key or "").strip() or await gateway.vault.load_credential(provider_key)
    result = await adapter.verify_api_key(http_client, api_key)

    return AdminActionResponse(
        success=result["success"],
        message=result["message"],
        detail={"provider": provider_key}
    )
