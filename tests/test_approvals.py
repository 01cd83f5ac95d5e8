"""Tests for the three-party approval aggregator."""

from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from land_gateway.core.errors import InvalidInput, LedgerCallFailure, RequestNotFound
from land_gateway.models.enums import ApprovalRole, TransferStatus

SIGNER = "0x1111111111111111111111111111111111111111"
BUYER = "0x2222222222222222222222222222222222222222"
APPROVER = "0x3333333333333333333333333333333333333333"


@pytest.fixture
async def pending_request(container, ledger) -> int:
    """A plot held by SIGNER and a whole-plot transfer to BUYER, both mirrored."""
    plot_id = ledger.add_plot("Plot-1", holder=SIGNER)
    request_id = ledger.add_request(plot_id, BUYER)
    await container.reconciler.ensure_synced(container.stores.plot)
    await container.reconciler.ensure_synced(container.stores.request)
    return request_id


async def test_three_approvals_complete_and_sync_holder(container, pending_request):
    aggregator = container.approvals

    first = await aggregator.approve(pending_request, APPROVER, 1)
    assert first.request.current_status == TransferStatus.IN_PROGRESS
    assert first.ownership_synced is False

    await aggregator.approve(pending_request, APPROVER, 2)
    final = await aggregator.approve(pending_request, APPROVER, 3)

    assert final.request.current_status == TransferStatus.COMPLETED
    assert final.request.land_authority_approved
    assert final.request.bank_approved
    assert final.request.lawyer_approved
    assert (final.prior_holder, final.current_holder) == (SIGNER, BUYER)
    assert final.ownership_synced is True
    assert final.warnings == []
    plot = await container.stores.plot.get(1)
    assert plot.current_holder == BUYER


async def test_unchanged_holder_leaves_plot_alone(container, ledger, pending_request):
    ledger.execute_transfers = False

    for role in ApprovalRole:
        outcome = await container.approvals.approve(pending_request, APPROVER, role)

    assert outcome.request.current_status == TransferStatus.COMPLETED
    assert outcome.ownership_synced is False
    assert (await container.stores.plot.get(1)).current_holder == SIGNER


async def test_role_labels(container, pending_request):
    outcome = await container.approvals.approve(pending_request, APPROVER, "2")
    assert outcome.role is ApprovalRole.BANK
    assert outcome.role.label == "Bank"
    assert outcome.request.bank_approved is True


@pytest.mark.parametrize("role", [0, 4, "lawyer", None])
async def test_invalid_role_rejected(container, pending_request, role):
    with pytest.raises(InvalidInput):
        await container.approvals.approve(pending_request, APPROVER, role)


async def test_invalid_signer_rejected(container, pending_request):
    with pytest.raises(InvalidInput):
        await container.approvals.approve(pending_request, "0x1234", 1)


async def test_unknown_request(container, pending_request):
    with pytest.raises(RequestNotFound):
        await container.approvals.approve(99, APPROVER, 1)


async def test_ledger_failure_leaves_mirror_untouched(container, ledger, pending_request):
    ledger.fail_submits = True

    with pytest.raises(LedgerCallFailure):
        await container.approvals.approve(pending_request, APPROVER, 1)

    row = await container.stores.request.get(pending_request)
    assert row.land_authority_approved is False
    assert row.current_status == TransferStatus.PENDING


async def test_mirror_write_failure_becomes_warning(container, ledger, pending_request):
    failing = AsyncMock(side_effect=OperationalError("UPDATE", {}, Exception("database is locked")))
    with patch.object(container.stores.request, "apply_approval", failing):
        outcome = await container.approvals.approve(pending_request, APPROVER, 1)

    assert outcome.approved is True
    assert len(outcome.warnings) == 1
    assert ledger.requests[0][ApprovalRole.LAND_AUTHORITY] is True
    assert outcome.request.land_authority_approved is False


async def test_holder_read_failure_skips_ownership_sync(container, ledger, pending_request):
    await container.approvals.approve(pending_request, APPROVER, 1)
    await container.approvals.approve(pending_request, APPROVER, 2)
    ledger.fail_reads = True

    outcome = await container.approvals.approve(pending_request, APPROVER, 3)

    assert outcome.request.current_status == TransferStatus.COMPLETED
    assert outcome.prior_holder is None
    assert outcome.ownership_synced is False
    assert (await container.stores.plot.get(1)).current_holder == SIGNER
