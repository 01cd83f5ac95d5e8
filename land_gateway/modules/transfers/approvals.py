"""Approval aggregator for three-party transfer requests.

The third approval makes the ledger execute the transfer inside the same
transaction, and no separate event is guaranteed. The plot holder is
therefore read before and after submission and the mirror is updated only
when the two differ.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import structlog
from sqlalchemy.exc import SQLAlchemyError

from land_gateway.core.errors import GatewayError, InvalidInput, LedgerReadFailure, RequestNotFound
from land_gateway.core.ledger import LedgerReceipt, is_address
from land_gateway.models.enums import ApprovalRole
from land_gateway.models.mirror import TransferRequest
from land_gateway.modules.mirror.reconciliation import ReconciliationEngine
from land_gateway.modules.mirror.store import MirrorStores

logger = structlog.get_logger()


@dataclass
class ApprovalOutcome:
    request_id: int
    role: ApprovalRole
    receipt: LedgerReceipt
    request: TransferRequest | None = None
    prior_holder: str | None = None
    current_holder: str | None = None
    ownership_synced: bool = False
    warnings: list[str] = field(default_factory=list)

    @property
    def approved(self) -> bool:
        return self.receipt.status == 1


def parse_role(role: Any) -> ApprovalRole:
    try:
        return ApprovalRole(int(role))
    except (TypeError, ValueError) as exc:
        raise InvalidInput(
            "Invalid role",
            details="Role must be 1 (Land Authority), 2 (Bank), or 3 (Lawyer)",
        ) from exc


class ApprovalAggregator:
    def __init__(self, ledger: Any, stores: MirrorStores, reconciler: ReconciliationEngine) -> None:
        self._ledger = ledger
        self._stores = stores
        self._reconciler = reconciler

    async def approve(self, request_id: int, signer_address: str, role: Any) -> ApprovalOutcome:
        role = parse_role(role)
        if not is_address(signer_address):
            raise InvalidInput("Invalid signer wallet address format", details={"signerWallet": signer_address})

        table = self._stores.request
        await self._reconciler.ensure_synced(table)
        request = await table.get(request_id)
        if request is None:
            raise RequestNotFound(f"Transfer request {request_id} is not in the mirror")

        prior_holder = await self._read_holder(request.plot_id, stage="before")

        # ledger failures propagate; nothing has touched the mirror yet
        receipt = await self._ledger.submit_approve_and_execute(signer_address, request_id, role)
        outcome = ApprovalOutcome(
            request_id=request_id, role=role, receipt=receipt, prior_holder=prior_holder
        )

        try:
            await table.apply_approval(request_id, role)
        except (GatewayError, SQLAlchemyError) as exc:
            logger.warning("approval.mirror_write_failed", request_id=request_id, role=role.label, error=str(exc))
            outcome.warnings.append(f"Approval confirmed on the ledger but not recorded in the mirror: {exc}")

        outcome.request = await table.get(request_id)
        if outcome.request is not None and outcome.request.fully_approved:
            await self._sync_ownership(outcome)
        return outcome

    async def _read_holder(self, plot_id: int, stage: str) -> str | None:
        try:
            return await self._ledger.read_plot_holder(plot_id)
        except LedgerReadFailure as exc:
            logger.warning("approval.holder_read_failed", plot_id=plot_id, stage=stage, error=exc.message)
            return None

    async def _sync_ownership(self, outcome: ApprovalOutcome) -> None:
        plot_id = outcome.request.plot_id
        outcome.current_holder = await self._read_holder(plot_id, stage="after")
        if outcome.prior_holder is None or outcome.current_holder is None:
            logger.info("approval.ownership_sync_skipped", plot_id=plot_id, reason="holder unknown")
            return
        if outcome.current_holder.lower() == outcome.prior_holder.lower():
            logger.info("approval.ownership_unchanged", plot_id=plot_id, holder=outcome.current_holder)
            return

        try:
            await self._stores.plot.update_holder(plot_id, outcome.current_holder)
        except (GatewayError, SQLAlchemyError) as exc:
            logger.warning("approval.ownership_sync_failed", plot_id=plot_id, error=str(exc))
            outcome.warnings.append(f"Ownership changed on the ledger but the plot mirror is stale: {exc}")
            return
        outcome.ownership_synced = True
        logger.info(
            "approval.ownership_synced",
            plot_id=plot_id,
            previous=outcome.prior_holder,
            holder=outcome.current_holder,
        )
