"""Land token / plot creation routes and ledger read-through getters."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Path, Query
from fastapi.responses import JSONResponse

from land_gateway.core.dependencies import GatewayContainer, get_container, get_ledger
from land_gateway.modules.land import service
from land_gateway.modules.land.schemas import CreatePlotBody, CreateTokenBody
from land_gateway.schemas.common import OperationResult

setter_router = APIRouter(prefix="/setter", tags=["land"])
getter_router = APIRouter(prefix="/getter", tags=["ledger getters"])
plot_router = APIRouter(prefix="/get_plot", tags=["plot shares"])

PositiveId = Annotated[int, Path(gt=0)]


@setter_router.post("/create-token")
async def create_token(
    body: CreateTokenBody,
    container: GatewayContainer = Depends(get_container),
) -> JSONResponse:
    result = await service.create_token(container, body)
    return result.as_response()


@setter_router.post("/plot-initiate")
async def plot_initiate(
    body: CreatePlotBody,
    container: GatewayContainer = Depends(get_container),
) -> JSONResponse:
    result = await service.create_plot(container, body)
    return result.as_response()


# ── /getter ───────────────────────────────────────────────────────────────────


@getter_router.get("/get-treasury")
async def get_treasury(ledger: Any = Depends(get_ledger)) -> JSONResponse:
    data = await service.treasury_wallet(ledger)
    return OperationResult.ok("Treasury wallet retrieved successfully", data).as_response()


@getter_router.get("/land/{token_id}")
async def get_land(token_id: PositiveId, ledger: Any = Depends(get_ledger)) -> JSONResponse:
    data = await service.land_info(ledger, token_id)
    return OperationResult.ok("Land info retrieved successfully", data).as_response()


@getter_router.get("/plot/{plot_id}/info")
async def get_plot_info(plot_id: PositiveId, ledger: Any = Depends(get_ledger)) -> JSONResponse:
    data = await service.plot_info(ledger, plot_id)
    return OperationResult.ok("Plot info retrieved successfully", data).as_response()


@getter_router.get("/plots")
async def get_plots(ledger: Any = Depends(get_ledger)) -> JSONResponse:
    data = await service.plot_list(ledger)
    return OperationResult.ok("Plot list retrieved successfully", data).as_response()


@getter_router.get("/token/{token_id}/uri")
async def get_token_uri(token_id: PositiveId, ledger: Any = Depends(get_ledger)) -> JSONResponse:
    data = await service.token_uri(ledger, token_id)
    return OperationResult.ok("Token URI retrieved successfully", data).as_response()


@getter_router.get("/transfer/{request_id}/status")
async def get_transfer_status(request_id: PositiveId, ledger: Any = Depends(get_ledger)) -> JSONResponse:
    data = await service.transfer_status(ledger, request_id)
    return OperationResult.ok("Transfer request status retrieved successfully", data).as_response()


@getter_router.get("/plot-and-token-id-info")
async def get_counters(ledger: Any = Depends(get_ledger)) -> JSONResponse:
    data = await service.current_counters(ledger)
    return OperationResult.ok("Current plot and token ids retrieved successfully", data).as_response()


# ── /get_plot ─────────────────────────────────────────────────────────────────


@plot_router.get("/plot/{plot_id}/parcel/{parcel_id}/shareholders")
async def get_parcel_shareholders(
    plot_id: PositiveId,
    parcel_id: PositiveId,
    ledger: Any = Depends(get_ledger),
) -> JSONResponse:
    data = await service.parcel_shareholders(ledger, plot_id, parcel_id)
    return OperationResult.ok("Parcel shareholders retrieved successfully", data).as_response()


@plot_router.get("/plot/{plot_id}/parcel/{parcel_id}/user/{user_address}/shares")
async def get_user_shares(
    user_address: str,
    plot_id: PositiveId,
    parcel_id: PositiveId,
    ledger: Any = Depends(get_ledger),
) -> JSONResponse:
    data = await service.user_shares(ledger, plot_id, parcel_id, user_address)
    return OperationResult.ok("User shares retrieved successfully", data).as_response()


@plot_router.get("/plot/{plot_id}/parcel/{parcel_id}/total-shares")
async def get_parcel_total_shares(
    plot_id: PositiveId,
    parcel_id: PositiveId,
    ledger: Any = Depends(get_ledger),
) -> JSONResponse:
    data = await service.parcel_total_shares(ledger, plot_id, parcel_id)
    return OperationResult.ok("Parcel total shares retrieved successfully", data).as_response()


@plot_router.get("/plot/{plot_id}/user/{user_address}/parcels")
async def get_user_parcels(
    user_address: str,
    plot_id: PositiveId,
    parcel: int = Query(0, ge=0, description="Optional parcel filter; 0 for all"),
    ledger: Any = Depends(get_ledger),
) -> JSONResponse:
    data = await service.user_parcels(ledger, plot_id, user_address, parcel)
    return OperationResult.ok("User parcels retrieved successfully", data).as_response()


@plot_router.get("/plot/{plot_id}/user/{user_address}/ownership")
async def get_user_ownership(
    user_address: str,
    plot_id: PositiveId,
    ledger: Any = Depends(get_ledger),
) -> JSONResponse:
    data = await service.ownership_percentage(ledger, plot_id, user_address)
    return OperationResult.ok("User ownership percentage in plot retrieved successfully", data).as_response()
