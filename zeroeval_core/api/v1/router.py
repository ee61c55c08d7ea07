"""
Router assembly.

Every route here authenticates with a workspace API key. Workspace-scoped
routes additionally check that the key belongs to the workspace in the path.
"""

from fastapi import APIRouter, Depends

from zeroeval_core.api.v1.helpers.authentication import get_current_api_key

from zeroeval_core.api.v1.endpoints import (
    ab_tests,
    datasets,
    experiments,
    gateway,
    proxy,
    signals,
    spans,
    traces,
)

core_api_router = APIRouter(dependencies=[Depends(get_current_api_key)])
core_api_router.include_router(spans.router, prefix="/spans", tags=["spans"])
core_api_router.include_router(traces.router, tags=["traces"])
# signals first so /tests/signals is not captured by /tests/{test_id}
core_api_router.include_router(signals.router, prefix="/workspaces", tags=["signals"])
core_api_router.include_router(ab_tests.router, prefix="/workspaces", tags=["ab-tests"])
core_api_router.include_router(datasets.router, prefix="/workspaces", tags=["datasets"])
core_api_router.include_router(
    experiments.router, prefix="/workspaces", tags=["experiments"]
)
core_api_router.include_router(proxy.router, prefix="/proxy", tags=["proxy"])
core_api_router.include_router(gateway.router, prefix="/v1", tags=["gateway"])
