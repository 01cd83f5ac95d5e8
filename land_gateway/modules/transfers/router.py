"""Transfer request and approval routes."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from land_gateway.core.dependencies import GatewayContainer, get_container
from land_gateway.modules.transfers import service
from land_gateway.modules.transfers.schemas import ApprovalBody, ParcelTransferBody, PlotTransferBody

router = APIRouter(prefix="/setter", tags=["transfers"])


@router.post("/request-plot-transfer")
async def request_plot_transfer(
    body: PlotTransferBody,
    container: GatewayContainer = Depends(get_container),
) -> JSONResponse:
    """Request a whole-plot transfer; the new request starts PENDING."""
    result = await service.request_plot_transfer(container, body)
    return result.as_response()


@router.post("/request-parcel-transfer")
async def request_parcel_transfer(
    body: ParcelTransferBody,
    container: GatewayContainer = Depends(get_container),
) -> JSONResponse:
    """Request a transfer of parcel shares out of a plot."""
    result = await service.request_parcel_transfer(container, body)
    return result.as_response()


@router.post("/approve-transfer-execution")
async def approve_transfer_execution(
    body: ApprovalBody,
    container: GatewayContainer = Depends(get_container),
) -> JSONResponse:
    """Approve as one role; the third approval executes the transfer on the ledger."""
    result = await service.approve_transfer(container, body)
    return result.as_response()
