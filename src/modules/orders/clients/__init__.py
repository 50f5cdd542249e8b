"""Collaborator clients used by the order saga.

``get_stock_catalog_client`` / ``get_identity_validator`` build the
production clients once per process from Django settings; the underlying
``httpx.Client`` pool and gRPC channel are thread-safe and shared.
"""

from __future__ import annotations

from functools import lru_cache

from django.conf import settings

from modules.orders.clients.catalog import HTTPStockCatalogClient
from modules.orders.clients.identity import RPCIdentityValidator
from modules.orders.clients.interfaces import (
    IIdentityValidator,
    IStockCatalogClient,
    ProductSnapshot,
)


@lru_cache(maxsize=1)
def get_stock_catalog_client() -> IStockCatalogClient:
    return HTTPStockCatalogClient(
        base_url=settings.CATALOG_SERVICE_URL,
        timeout=settings.COLLABORATOR_TIMEOUT_SECONDS,
    )


@lru_cache(maxsize=1)
def get_identity_validator() -> IIdentityValidator:
    return RPCIdentityValidator(
        target=settings.IDENTITY_SERVICE_ADDR,
        service=settings.IDENTITY_RPC_SERVICE,
        timeout=settings.COLLABORATOR_TIMEOUT_SECONDS,
    )


__all__ = [
    "IIdentityValidator",
    "IStockCatalogClient",
    "ProductSnapshot",
    "get_identity_validator",
    "get_stock_catalog_client",
]
