"""Mirror administration routes and the API call log."""

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from land_gateway.core.dependencies import GatewayContainer, get_container
from land_gateway.modules.mirror import service
from land_gateway.schemas.common import OperationResult

router = APIRouter(prefix="/db-management", tags=["mirror"])
logs_router = APIRouter(tags=["logs"])


@router.get("/show-table/{table_name}")
async def show_table(
    table_name: str,
    container: GatewayContainer = Depends(get_container),
) -> JSONResponse:
    """All rows of a mirror table; bootstraps it from the ledger if missing or empty."""
    rows = await service.show_table(container.stores, container.reconciler, table_name)
    return OperationResult.ok(
        f"Retrieved {len(rows)} rows from {table_name}", {"table": table_name, "rows": rows}
    ).as_response()


@router.delete("/table/{table_name}")
async def drop_table(
    table_name: str,
    container: GatewayContainer = Depends(get_container),
) -> JSONResponse:
    """Drop a mirror table; the next access rebuilds it from the ledger."""
    await service.drop_table(container.stores, table_name)
    return OperationResult.ok(f"Table {table_name} dropped", {"table": table_name}).as_response()


@router.post("/table/{table_name}/resync")
async def resync_table(
    table_name: str,
    container: GatewayContainer = Depends(get_container),
) -> JSONResponse:
    report = await service.resync_table(container.stores, container.reconciler, table_name)
    return OperationResult.ok(f"Table {table_name} resynced from the ledger", report).as_response()


@router.get("/plot/{plot_name}")
async def get_plot_by_name(
    plot_name: str,
    container: GatewayContainer = Depends(get_container),
) -> JSONResponse:
    plot = await service.plot_by_name(container.stores, container.reconciler, plot_name)
    return OperationResult.ok("Plot retrieved successfully", plot).as_response()


@router.get("/blockparcel/{block_name}/{parcel_name}")
async def get_block_parcel(
    block_name: str,
    parcel_name: str,
    container: GatewayContainer = Depends(get_container),
) -> JSONResponse:
    land = await service.land_by_block_and_parcel(
        container.stores, container.reconciler, block_name, parcel_name
    )
    return OperationResult.ok("Land parcel retrieved successfully", land).as_response()


@logs_router.get("/logs")
async def list_call_logs(
    limit: int = Query(100, ge=1, le=1000),
    container: GatewayContainer = Depends(get_container),
) -> JSONResponse:
    """Most recent API calls, newest first."""
    entries = await service.recent_call_logs(container.session_factory, limit)
    return OperationResult.ok(f"Retrieved {len(entries)} log entries", entries).as_response()
