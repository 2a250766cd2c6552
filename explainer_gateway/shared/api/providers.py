"""
Provider information API endpoints.
"""

from fastapi import APIRouter

from ..core.dependencies import GatewayDep, RegistryDep
from ..models.responses import ProviderInfo, ProvidersResponse


router = APIRouter(
    tags=["providers"]
)


@router.get("/providers", response_model=ProvidersResponse)
async def get_providers(
    registry: RegistryDep,
    gateway: GatewayDep
):
    """List registered providers, their models and the one currently in use."""
    providers = {}
    for key in registry.list_providers():
        info = registry.get_provider_info(key)
        providers[key] = ProviderInfo(
            key=info["key"],
            name=info["name"],
            models=info["models"],
            default_model=info["default_model"],
            aliases=info["aliases"],
        )

    return ProvidersResponse(
        providers=providers,
        active_provider=gateway.provider.key,
        active_model=gateway.model
    )
