"""Reconciliation engine: bootstraps mirror tables from the ledger.

A table is rebuilt only when it is missing, empty, or has just had a
required column added by schema repair. Otherwise a populated table is
left alone and local write-through keeps it current.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any

import structlog

from land_gateway.core.errors import LedgerReadFailure, ReconciliationFailure
from land_gateway.core.ledger import LedgerLand, LedgerPlot, LedgerTransferRequest, is_address
from land_gateway.models.enums import MirrorTableName, compute_transfer_status
from land_gateway.modules.mirror.store import MirrorStores, MirrorTable

logger = structlog.get_logger()


@dataclass(frozen=True)
class SyncReport:
    table: str
    synced_count: int
    skipped_count: int
    resynced: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "table": self.table,
            "syncedCount": self.synced_count,
            "skippedCount": self.skipped_count,
            "resynced": self.resynced,
        }


# ── ledger record -> mirror row ───────────────────────────────────────────────
# Each converter returns None when the record is structurally invalid.


def land_row(record: LedgerLand, token_id: int) -> dict[str, Any] | None:
    if not record.block_name or not record.parcel_name:
        return None
    if record.total_supply is None or record.metadata_uri is None:
        return None
    return {
        "token_id": token_id,
        "block_name": record.block_name,
        "parcel_name": record.parcel_name,
        "total_supply": record.total_supply,
        "metadata_uri": record.metadata_uri,
    }


def plot_row(record: LedgerPlot, plot_id: int) -> dict[str, Any] | None:
    if not record.plot_name or not is_address(record.holder):
        return None
    if len(record.parcel_ids) != len(record.parcel_amounts):
        return None
    return {
        "plot_id": plot_id,
        "plot_name": record.plot_name,
        "current_holder": record.holder,
        "parcel_ids": [int(p) for p in record.parcel_ids],
        "parcel_amounts": list(record.parcel_amounts),
    }


def request_row(record: LedgerTransferRequest, request_id: int) -> dict[str, Any] | None:
    if record.plot_id is None or record.is_plot_transfer is None:
        return None
    return {
        "request_id": request_id,
        "plot_id": int(record.plot_id),
        "is_plot_transfer": record.is_plot_transfer,
        "land_authority_approved": record.land_authority_approved,
        "bank_approved": record.bank_approved,
        "lawyer_approved": record.lawyer_approved,
        "current_status": compute_transfer_status(
            record.land_authority_approved, record.bank_approved, record.lawyer_approved
        ),
    }


def build_rows(
    records: Sequence[Any],
    convert: Callable[[Any, int], dict[str, Any] | None],
    id_attr: str,
) -> tuple[list[dict[str, Any]], int]:
    """Assign ids and validate. Returns (valid rows, invalid count).

    A record carrying its own ledger id keeps it. Otherwise the id is its
    1-based position in the enumeration, and invalid records still use up
    their position so later records stay aligned with the ledger.
    """
    rows: list[dict[str, Any]] = []
    invalid = 0
    for index, record in enumerate(records):
        native = getattr(record, id_attr, None)
        record_id = int(native) if native is not None else index + 1
        try:
            row = convert(record, record_id)
        except (TypeError, ValueError):
            row = None
        if row is None:
            invalid += 1
            logger.warning("mirror.resync.invalid_entry", position=index, record_id=record_id)
            continue
        rows.append(row)
    return rows, invalid


class ReconciliationEngine:
    def __init__(self, ledger: Any, stores: MirrorStores) -> None:
        self._ledger = ledger
        self._stores = stores
        self._sources: dict[str, tuple[Callable[[], Awaitable[Sequence[Any]]], Callable, str]] = {
            MirrorTableName.LAND.value: (ledger.read_all_land_info, land_row, "token_id"),
            MirrorTableName.PLOT.value: (ledger.read_all_plot_info, plot_row, "plot_id"),
            MirrorTableName.REQUEST.value: (ledger.read_all_transfer_requests, request_row, "request_id"),
        }

    async def ensure_synced(self, table: MirrorTable) -> SyncReport:
        if not await table.exists():
            await table.ensure_schema()
            return await self.resync(table)

        added = await table.ensure_schema()
        if table.requires_backfill(added):
            # rows predating the repaired columns get their values from the ledger
            logger.warning("mirror.schema.backfill", table=table.name, columns=added)
            return await self.resync(table)

        count = await table.row_count()
        if count == 0:
            return await self.resync(table)

        return SyncReport(table=table.name, synced_count=0, skipped_count=count, resynced=False)

    async def resync(self, table: MirrorTable) -> SyncReport:
        """Full rebuild from the ledger; rows already written survive a later abort."""
        read_all, convert, id_attr = self._sources[table.name]
        await table.ensure_schema()
        try:
            records = await read_all()
        except LedgerReadFailure as exc:
            logger.error("mirror.resync.read_failed", table=table.name, error=exc.message)
            raise ReconciliationFailure(
                f"Could not read {table.name} from the ledger: {exc.message}",
                details={"table": table.name},
            ) from exc

        rows, invalid = build_rows(records, convert, id_attr)
        written, failed = await table.upsert_from_ledger(rows)
        report = SyncReport(
            table=table.name,
            synced_count=written,
            skipped_count=invalid + failed,
            resynced=True,
        )
        logger.info(
            "mirror.resync.completed",
            table=table.name,
            synced=report.synced_count,
            skipped=report.skipped_count,
        )
        return report

    async def sync_all(self) -> list[SyncReport]:
        """ensure_synced for every mirror table; one failing table does not stop the others."""
        reports: list[SyncReport] = []
        for table in self._stores:
            try:
                reports.append(await self.ensure_synced(table))
            except ReconciliationFailure as exc:
                logger.error("mirror.bootstrap.failed", table=table.name, error=exc.message)
        return reports
