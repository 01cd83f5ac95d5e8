"""Transfer request creation and approval orchestration."""

from __future__ import annotations

import structlog

from land_gateway.core.dependencies import GatewayContainer
from land_gateway.core.errors import NotFound
from land_gateway.core.ledger import LedgerReceipt
from land_gateway.models.enums import TransferStatus
from land_gateway.modules.mirror.service import write_through
from land_gateway.modules.transfers.approvals import ApprovalOutcome
from land_gateway.modules.transfers.schemas import (
    ApprovalBody,
    ApprovalResult,
    ParcelTransferBody,
    PlotTransferBody,
    TransferRequestCreated,
)
from land_gateway.schemas.common import OperationResult, dump

logger = structlog.get_logger()


async def _require_plot(container: GatewayContainer, plot_id: int) -> None:
    await container.reconciler.ensure_synced(container.stores.plot)
    if await container.stores.plot.get(plot_id) is None:
        raise NotFound(f"Plot {plot_id} not found", details={"plotId": plot_id})


async def _record_request(
    container: GatewayContainer, receipt: LedgerReceipt, plot_id: int, is_plot_transfer: bool
) -> tuple[int | None, list[str]]:
    raw_id = receipt.find_arg("TransferRequestCreated", "requestId")
    if raw_id is None:
        logger.warning("transfer.request_id_missing", tx_hash=receipt.tx_hash)
        return None, ["TransferRequestCreated event not found in receipt; mirror not updated"]

    request_id = int(raw_id)
    warnings = await write_through(
        container.reconciler,
        container.stores.request,
        {
            "request_id": request_id,
            "plot_id": plot_id,
            "is_plot_transfer": is_plot_transfer,
            "land_authority_approved": False,
            "bank_approved": False,
            "lawyer_approved": False,
            "current_status": TransferStatus.PENDING,
        },
    )
    return request_id, warnings


async def request_plot_transfer(container: GatewayContainer, body: PlotTransferBody) -> OperationResult:
    await _require_plot(container, body.plot_id)
    receipt = await container.ledger.submit_request_plot_transfer(body.plot_id, body.to)
    request_id, warnings = await _record_request(container, receipt, body.plot_id, True)
    logger.info("transfer.plot_requested", request_id=request_id, plot_id=body.plot_id, tx_hash=receipt.tx_hash)
    return OperationResult.ok(
        "Plot transfer request created successfully",
        dump(
            TransferRequestCreated(
                request_id=request_id,
                plot_id=body.plot_id,
                is_plot_transfer=True,
                to=body.to,
                transaction=receipt.to_dict(),
            )
        ),
        warnings,
    )


async def request_parcel_transfer(container: GatewayContainer, body: ParcelTransferBody) -> OperationResult:
    await _require_plot(container, body.plot_id)
    receipt = await container.ledger.submit_request_parcel_transfer(
        body.parcel_id, body.parcel_amount, body.to, body.plot_id
    )
    request_id, warnings = await _record_request(container, receipt, body.plot_id, False)
    logger.info(
        "transfer.parcel_requested",
        request_id=request_id,
        plot_id=body.plot_id,
        parcel_id=body.parcel_id,
        tx_hash=receipt.tx_hash,
    )
    return OperationResult.ok(
        "Parcel transfer request created successfully",
        dump(
            TransferRequestCreated(
                request_id=request_id,
                plot_id=body.plot_id,
                is_plot_transfer=False,
                to=body.to,
                parcel_id=body.parcel_id,
                parcel_amount=str(body.parcel_amount),
                transaction=receipt.to_dict(),
            )
        ),
        warnings,
    )


def _approval_result(body: ApprovalBody, outcome: ApprovalOutcome) -> ApprovalResult:
    return ApprovalResult(
        signer_wallet=body.signer_wallet,
        request_id=outcome.request_id,
        role=int(outcome.role),
        role_name=outcome.role.label,
        approved=outcome.approved,
        current_status=outcome.request.current_status.value if outcome.request else None,
        ownership_synced=outcome.ownership_synced,
        previous_holder=outcome.prior_holder,
        current_holder=outcome.current_holder,
        transaction=outcome.receipt.to_dict(),
    )


async def approve_transfer(container: GatewayContainer, body: ApprovalBody) -> OperationResult:
    outcome = await container.approvals.approve(body.request_id, body.signer_wallet, body.role)
    return OperationResult.ok(
        f"Transfer approved by {outcome.role.label} successfully",
        dump(_approval_result(body, outcome)),
        outcome.warnings,
    )
