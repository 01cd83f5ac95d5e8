"""Relational mirror store: one store object per mirrored ledger table.

Each operation opens its own session from the pool and commits before
returning; nothing here spans more than one table.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, ClassVar

import structlog
from sqlalchemy import func, inspect, select, text
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from land_gateway.core.database import Base
from land_gateway.core.errors import DuplicateKey, NotFound, RequestNotFound
from land_gateway.models.enums import ApprovalRole, MirrorTableName, compute_transfer_status
from land_gateway.models.mirror import LandParcel, Plot, TransferRequest

logger = structlog.get_logger()

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class MirrorTable:
    """Existence check, additive schema repair, bulk upsert and single insert."""

    model: ClassVar[type[Base]]
    table_name: ClassVar[MirrorTableName]

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @property
    def name(self) -> str:
        return self.table_name.value

    @property
    def _table(self):
        return self.model.__table__

    @property
    def primary_key(self) -> str:
        return self._table.primary_key.columns.values()[0].name

    # ── schema ────────────────────────────────────────────────────────────────

    async def exists(self) -> bool:
        async with self._session_factory() as session:
            conn = await session.connection()
            return await conn.run_sync(lambda sync_conn: inspect(sync_conn).has_table(self.name))

    async def ensure_schema(self) -> list[str]:
        """Create the table if absent, add any missing columns. Never drops data.

        Returns the names of columns that had to be added.
        """
        async with self._session_factory() as session:
            conn = await session.connection()
            await conn.run_sync(lambda sync_conn: self._table.create(sync_conn, checkfirst=True))
            present = await conn.run_sync(
                lambda sync_conn: {c["name"] for c in inspect(sync_conn).get_columns(self.name)}
            )
            added: list[str] = []
            preparer = conn.dialect.identifier_preparer
            for column in self._table.columns:
                if column.name in present:
                    continue
                col_type = column.type.compile(dialect=conn.dialect)
                # added nullable: existing rows have no value for it
                await conn.execute(
                    text(
                        f"ALTER TABLE {preparer.quote(self.name)} "
                        f"ADD COLUMN {preparer.quote(column.name)} {col_type}"
                    )
                )
                added.append(column.name)
            await session.commit()

        if added:
            logger.warning("mirror.schema.columns_added", table=self.name, columns=added)
        return added

    def requires_backfill(self, added: Sequence[str]) -> bool:
        """True when a freshly added column is one every row must have a value for."""
        columns = self._table.columns
        return any(not columns[name].nullable and columns[name].server_default is None for name in added)

    async def drop(self) -> None:
        async with self._session_factory() as session:
            conn = await session.connection()
            await conn.run_sync(lambda sync_conn: self._table.drop(sync_conn, checkfirst=True))
            await session.commit()
        logger.warning("mirror.table.dropped", table=self.name)

    # ── reads ─────────────────────────────────────────────────────────────────

    async def row_count(self) -> int:
        async with self._session_factory() as session:
            result = await session.execute(select(func.count()).select_from(self._table))
            return int(result.scalar_one())

    async def list_rows(self) -> list[Any]:
        pk = self._table.primary_key.columns.values()[0]
        async with self._session_factory() as session:
            result = await session.execute(select(self.model).order_by(pk))
            return list(result.scalars().all())

    async def get(self, key: int) -> Any | None:
        async with self._session_factory() as session:
            return await session.get(self.model, key)

    # ── writes ────────────────────────────────────────────────────────────────

    async def upsert_from_ledger(self, rows: Sequence[dict[str, Any]]) -> tuple[int, int]:
        """Insert-or-overwrite every row on primary-key conflict.

        Each row commits independently. Returns (written, failed).
        """
        written = failed = 0
        pk = self.primary_key
        for row in rows:
            try:
                async with self._session_factory() as session:
                    dialect = session.get_bind().dialect.name
                    insert = _UPSERT_DIALECTS.get(dialect)
                    if insert is None:
                        raise NotImplementedError(f"upsert not supported on {dialect}")
                    stmt = insert(self._table).values(**row)
                    stmt = stmt.on_conflict_do_update(
                        index_elements=[pk],
                        set_={col: stmt.excluded[col] for col in row if col != pk},
                    )
                    await session.execute(stmt)
                    await session.commit()
                written += 1
            except SQLAlchemyError as exc:
                failed += 1
                logger.warning("mirror.upsert.row_failed", table=self.name, key=row.get(pk), error=str(exc))
        return written, failed

    async def insert_one(self, row: dict[str, Any]) -> Any:
        async with self._session_factory() as session:
            record = self.model(**row)
            session.add(record)
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise DuplicateKey(
                    f"{self.name} already holds a row for {self.primary_key}={row.get(self.primary_key)}",
                    details={"table": self.name, "key": row.get(self.primary_key)},
                ) from exc
            logger.info("mirror.row.inserted", table=self.name, key=row.get(self.primary_key))
            return record


class LandParcelTable(MirrorTable):
    model = LandParcel
    table_name = MirrorTableName.LAND

    async def get_by_block_and_parcel(self, block_name: str, parcel_name: str) -> LandParcel | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(LandParcel)
                .where(LandParcel.block_name == block_name, LandParcel.parcel_name == parcel_name)
                .order_by(LandParcel.token_id)
                .limit(1)
            )
            return result.scalar_one_or_none()


class PlotTable(MirrorTable):
    model = Plot
    table_name = MirrorTableName.PLOT

    async def get_by_name(self, plot_name: str) -> Plot | None:
        async with self._session_factory() as session:
            result = await session.execute(select(Plot).where(Plot.plot_name == plot_name))
            return result.scalar_one_or_none()

    async def update_holder(self, plot_id: int, new_holder: str) -> Plot:
        async with self._session_factory() as session:
            plot = await session.get(Plot, plot_id, with_for_update=True)
            if plot is None:
                raise NotFound(f"Plot {plot_id} is not in the mirror")
            previous = plot.current_holder
            plot.current_holder = new_holder
            await session.commit()
            await session.refresh(plot)
        logger.info("mirror.plot.holder_updated", plot_id=plot_id, previous=previous, holder=new_holder)
        return plot


class TransferRequestTable(MirrorTable):
    model = TransferRequest
    table_name = MirrorTableName.REQUEST

    async def insert_one(self, row: dict[str, Any]) -> TransferRequest | None:
        """Duplicate request ids are a no-op: resync and live inserts can race."""
        try:
            return await super().insert_one(row)
        except DuplicateKey:
            logger.info("mirror.request.duplicate_ignored", request_id=row.get("request_id"))
            return None

    async def apply_approval(self, request_id: int, role: ApprovalRole) -> TransferRequest:
        """Set one role's flag and recompute status under a row lock.

        Flags only ever move from false to true.
        """
        async with self._session_factory() as session:
            request = await session.get(TransferRequest, request_id, with_for_update=True)
            if request is None:
                raise RequestNotFound(f"Transfer request {request_id} is not in the mirror")
            setattr(request, role.column, True)
            request.current_status = compute_transfer_status(
                request.land_authority_approved,
                request.bank_approved,
                request.lawyer_approved,
            )
            await session.commit()
            await session.refresh(request)
        logger.info(
            "mirror.request.approval_applied",
            request_id=request_id,
            role=role.label,
            status=request.current_status.value,
        )
        return request


class MirrorStores:
    """The three mirror tables, addressable by name."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.land = LandParcelTable(session_factory)
        self.plot = PlotTable(session_factory)
        self.request = TransferRequestTable(session_factory)

    def __iter__(self):
        return iter((self.land, self.plot, self.request))

    def by_name(self, name: str) -> MirrorTable:
        for table in self:
            if table.name == name:
                return table
        raise NotFound(
            f"Unknown mirror table: {name}",
            details={"tables": [t.name for t in self]},
        )
