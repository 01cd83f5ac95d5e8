"""Mirror read paths, admin operations and post-transaction write-through."""

from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from land_gateway.core.errors import DuplicateKey, GatewayError, MirrorWriteFailure, NotFound
from land_gateway.models.call_log import ApiCallLog
from land_gateway.models.enums import MirrorTableName
from land_gateway.modules.mirror.reconciliation import ReconciliationEngine
from land_gateway.modules.mirror.schemas import (
    CallLogOut,
    LandParcelOut,
    MirrorRow,
    PlotOut,
    TransferRequestOut,
)
from land_gateway.modules.mirror.store import MirrorStores, MirrorTable

logger = structlog.get_logger()

ROW_SCHEMAS: dict[str, type[MirrorRow]] = {
    MirrorTableName.LAND.value: LandParcelOut,
    MirrorTableName.PLOT.value: PlotOut,
    MirrorTableName.REQUEST.value: TransferRequestOut,
}


def serialize(table: MirrorTable, record: Any) -> dict[str, Any]:
    return ROW_SCHEMAS[table.name].model_validate(record).model_dump(mode="json", by_alias=True)


async def write_through(
    reconciler: ReconciliationEngine, table: MirrorTable, row: dict[str, Any]
) -> list[str]:
    """Record a ledger-confirmed row in the mirror; failures come back as warnings.

    If the table had to be bootstrapped first, the resync has already
    pulled the new row from the ledger and no insert is needed.
    """
    key = row[table.primary_key]
    try:
        report = await reconciler.ensure_synced(table)
        if report.resynced and await table.get(key) is not None:
            return []
        await table.insert_one(row)
    except DuplicateKey as exc:
        logger.warning("mirror.write_through.duplicate", table=table.name, key=key)
        return [f"Mirror already holds {table.name} row {key}: {exc.message}"]
    except (GatewayError, SQLAlchemyError) as exc:
        failure = MirrorWriteFailure(
            f"Ledger transaction confirmed but the {table.name} mirror was not updated: {exc}",
            details={"table": table.name, "key": key},
        )
        logger.warning("mirror.write_through.failed", code=failure.code, table=table.name, key=key, error=str(exc))
        return [failure.message]
    return []


async def show_table(stores: MirrorStores, reconciler: ReconciliationEngine, name: str) -> list[dict[str, Any]]:
    table = stores.by_name(name)
    await reconciler.ensure_synced(table)
    return [serialize(table, row) for row in await table.list_rows()]


async def drop_table(stores: MirrorStores, name: str) -> None:
    await stores.by_name(name).drop()


async def resync_table(stores: MirrorStores, reconciler: ReconciliationEngine, name: str) -> dict[str, Any]:
    """Forced rebuild, regardless of current row count."""
    report = await reconciler.resync(stores.by_name(name))
    return report.to_dict()


async def plot_by_name(stores: MirrorStores, reconciler: ReconciliationEngine, plot_name: str) -> dict[str, Any]:
    await reconciler.ensure_synced(stores.plot)
    plot = await stores.plot.get_by_name(plot_name)
    if plot is None:
        raise NotFound(f"Plot '{plot_name}' not found")
    return serialize(stores.plot, plot)


async def land_by_block_and_parcel(
    stores: MirrorStores, reconciler: ReconciliationEngine, block_name: str, parcel_name: str
) -> dict[str, Any]:
    await reconciler.ensure_synced(stores.land)
    land = await stores.land.get_by_block_and_parcel(block_name, parcel_name)
    if land is None:
        raise NotFound(f"No land parcel for block '{block_name}' and parcel '{parcel_name}'")
    return serialize(stores.land, land)


async def recent_call_logs(
    session_factory: async_sessionmaker[AsyncSession], limit: int = 100
) -> list[dict[str, Any]]:
    async with session_factory() as session:
        result = await session.execute(
            select(ApiCallLog).order_by(ApiCallLog.created_at.desc()).limit(limit)
        )
        rows = result.scalars().all()
    return [CallLogOut.model_validate(r).model_dump(mode="json", by_alias=True) for r in rows]
