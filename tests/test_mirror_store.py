"""Tests for the relational mirror store."""

from itertools import product

import pytest

from land_gateway.core.errors import DuplicateKey, NotFound, RequestNotFound
from land_gateway.models.enums import ApprovalRole, TransferStatus, compute_transfer_status
from land_gateway.modules.mirror.store import MirrorStores

HOLDER = "0x1111111111111111111111111111111111111111"
NEW_HOLDER = "0x2222222222222222222222222222222222222222"


def _land(token_id: int, supply: str = "1000") -> dict:
    return {
        "token_id": token_id,
        "block_name": "Block-A",
        "parcel_name": f"Parcel-{token_id}",
        "total_supply": supply,
        "metadata_uri": f"ipfs://land/{token_id}",
    }


def _plot(plot_id: int, name: str = "Plot-1") -> dict:
    return {
        "plot_id": plot_id,
        "plot_name": name,
        "current_holder": HOLDER,
        "parcel_ids": [1, 2],
        "parcel_amounts": ["100", "250"],
    }


def _request(request_id: int, plot_id: int = 1) -> dict:
    return {"request_id": request_id, "plot_id": plot_id, "is_plot_transfer": True}


@pytest.fixture
async def stores(session_factory) -> MirrorStores:
    stores = MirrorStores(session_factory)
    for table in stores:
        await table.ensure_schema()
    return stores


# ── Schema ────────────────────────────────────────────────────────────────────


async def test_ensure_schema_creates_missing_table(session_factory):
    stores = MirrorStores(session_factory)
    assert await stores.land.exists() is False

    added = await stores.land.ensure_schema()

    assert added == []
    assert await stores.land.exists() is True
    assert await stores.land.row_count() == 0


async def test_ensure_schema_adds_missing_column_without_losing_rows(session_factory, legacy_plot_table):
    stores = MirrorStores(session_factory)
    added = await stores.plot.ensure_schema()

    assert added == ["parcel_amounts"]
    assert stores.plot.requires_backfill(added) is True
    assert await stores.plot.row_count() == 1
    legacy = await stores.plot.get_by_name("Legacy")
    assert legacy.current_holder == HOLDER
    assert legacy.parcel_ids == [1, 2]


def test_requires_backfill_ignores_optional_columns(session_factory):
    plot = MirrorStores(session_factory).plot
    assert plot.requires_backfill([]) is False
    # created_at has a server default; nothing to pull from the ledger
    assert plot.requires_backfill(["created_at"]) is False
    assert plot.requires_backfill(["parcel_amounts"]) is True


async def test_drop_removes_table(stores):
    await stores.land.insert_one(_land(1))
    await stores.land.drop()
    assert await stores.land.exists() is False


def test_by_name_rejects_unknown_table(session_factory):
    with pytest.raises(NotFound):
        MirrorStores(session_factory).by_name("users")


# ── Inserts and upserts ───────────────────────────────────────────────────────


async def test_insert_one_duplicate_land_raises(stores):
    await stores.land.insert_one(_land(1))
    with pytest.raises(DuplicateKey):
        await stores.land.insert_one(_land(1, supply="5"))
    assert (await stores.land.get(1)).total_supply == "1000"


async def test_insert_one_duplicate_request_is_noop(stores):
    first = await stores.request.insert_one(_request(1, plot_id=1))
    assert first is not None

    again = await stores.request.insert_one(_request(1, plot_id=99))

    assert again is None
    row = await stores.request.get(1)
    assert row.plot_id == 1
    assert row.current_status == TransferStatus.PENDING


async def test_upsert_overwrites_non_key_columns(stores):
    await stores.land.insert_one(_land(1))

    written, failed = await stores.land.upsert_from_ledger([_land(1, supply="777"), _land(2)])

    assert (written, failed) == (2, 0)
    assert (await stores.land.get(1)).total_supply == "777"
    assert await stores.land.row_count() == 2


async def test_upsert_counts_rejected_rows(stores):
    await stores.plot.insert_one(_plot(1, name="Same"))

    # plot 2 collides on the unique plot name
    written, failed = await stores.plot.upsert_from_ledger([_plot(2, name="Same"), _plot(3, name="Other")])

    assert (written, failed) == (1, 1)


async def test_plot_keeps_parcel_alignment(stores):
    await stores.plot.insert_one(_plot(1))
    plot = await stores.plot.get(1)
    assert plot.parcel_ids == [1, 2]
    assert plot.parcel_amounts == ["100", "250"]


async def test_land_lookup_by_block_and_parcel(stores):
    await stores.land.insert_one(_land(1))
    await stores.land.insert_one(_land(2))

    found = await stores.land.get_by_block_and_parcel("Block-A", "Parcel-2")

    assert found.token_id == 2
    assert await stores.land.get_by_block_and_parcel("Block-A", "Parcel-9") is None


# ── Holder updates ────────────────────────────────────────────────────────────


async def test_update_holder(stores):
    await stores.plot.insert_one(_plot(1))
    updated = await stores.plot.update_holder(1, NEW_HOLDER)
    assert updated.current_holder == NEW_HOLDER


async def test_update_holder_missing_plot(stores):
    with pytest.raises(NotFound):
        await stores.plot.update_holder(42, NEW_HOLDER)


# ── Approvals ─────────────────────────────────────────────────────────────────


@pytest.mark.parametrize("flags", list(product([False, True], repeat=3)))
def test_status_invariant(flags):
    land_authority, bank, lawyer = flags
    status = compute_transfer_status(land_authority, bank, lawyer)
    if all(flags):
        assert status == TransferStatus.COMPLETED
    elif not any(flags):
        assert status == TransferStatus.PENDING
    else:
        assert status == TransferStatus.IN_PROGRESS


@pytest.mark.parametrize("flags", list(product([False, True], repeat=3)))
async def test_apply_approval_status_matches_flags(stores, flags):
    await stores.request.insert_one(_request(1))
    row = await stores.request.get(1)
    for role, wanted in zip(ApprovalRole, flags):
        if wanted:
            row = await stores.request.apply_approval(1, role)

    assert row.current_status == compute_transfer_status(
        row.land_authority_approved, row.bank_approved, row.lawyer_approved
    )
    assert (row.land_authority_approved, row.bank_approved, row.lawyer_approved) == flags


async def test_apply_approval_is_monotonic(stores):
    await stores.request.insert_one(_request(1))
    await stores.request.apply_approval(1, ApprovalRole.BANK)

    for role in (ApprovalRole.LAWYER, ApprovalRole.LAND_AUTHORITY, ApprovalRole.LAWYER):
        row = await stores.request.apply_approval(1, role)
        assert row.bank_approved is True

    assert row.current_status == TransferStatus.COMPLETED


async def test_apply_approval_missing_request(stores):
    with pytest.raises(RequestNotFound):
        await stores.request.apply_approval(7, ApprovalRole.BANK)
