from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from benchmark.harness import BenchmarkHarness
from core.providers import providers_from_request
from gateway.service import ObjectGateway
from providers.factory import Providers
from providers.storage import ObjectStoreClient


# -----------------------------
# Canonical provider access
# -----------------------------

def get_providers(request: Request) -> Providers:
    """
    Canonical runtime provider resolver.

    Source of truth: request.app.state.providers
    """
    return providers_from_request(request)


def get_storage(request: Request) -> ObjectStoreClient:
    return get_providers(request).storage


StorageDep = Annotated[ObjectStoreClient, Depends(get_storage)]


# -----------------------------
# Canonical service deps
# -----------------------------

def get_gateway(request: Request) -> ObjectGateway:
    """
    Gateway bound to the process-wide store client.

    The gateway itself is stateless; only the client and the default bucket
    are carried across requests.
    """
    p = get_providers(request)
    return ObjectGateway(p.storage, default_bucket=p.settings.storage.bucket)


GatewayDep = Annotated[ObjectGateway, Depends(get_gateway)]


def get_benchmark(request: Request) -> BenchmarkHarness:
    p = get_providers(request)
    return BenchmarkHarness(
        store=p.storage,
        transfer_factory=p.transfer_factory,
        settings=p.settings.benchmark,
    )


BenchmarkDep = Annotated[BenchmarkHarness, Depends(get_benchmark)]
