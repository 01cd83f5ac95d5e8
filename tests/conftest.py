"""Shared fixtures: a temp-file SQLite mirror and an in-memory ledger."""

import os

os.environ["APP_ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CALL_LOG_ENABLED"] = "false"
os.environ["MIRROR_SYNC_ON_STARTUP"] = "false"
os.environ["SENTRY_DSN"] = ""

from collections.abc import AsyncGenerator
from itertools import count

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from land_gateway.core.dependencies import GatewayContainer
from land_gateway.core.errors import LedgerCallFailure, LedgerConfirmationPending, LedgerReadFailure
from land_gateway.core.ledger import (
    LedgerCounters,
    LedgerEvent,
    LedgerLand,
    LedgerPlot,
    LedgerReceipt,
    LedgerTransferRequest,
)
from land_gateway.main import app
from land_gateway.models.call_log import ApiCallLog
from land_gateway.models.enums import ApprovalRole

SIGNER = "0x1111111111111111111111111111111111111111"
BUYER = "0x2222222222222222222222222222222222222222"
APPROVER = "0x3333333333333333333333333333333333333333"


class FakeLedger:
    """In-memory stand-in for LedgerClient.

    Bulk reads omit ids, like the registry contract. The third approval
    hands the plot to the request's recipient unless execute_transfers
    is switched off.
    """

    signer_address = SIGNER

    def __init__(self) -> None:
        self.lands: list[LedgerLand] = []
        self.plots: list[dict] = []
        self.requests: list[dict] = []
        self.emit_events = True
        self.execute_transfers = True
        self.fail_reads = False
        self.fail_submits = False
        self.leave_unconfirmed = False
        self.treasury = "0x9999999999999999999999999999999999999999"
        self.ownership_bps = "2500"
        self._tx = count(1)

    # ── helpers ───────────────────────────────────────────────────────────────

    def _check_reads(self, name: str) -> None:
        if self.fail_reads:
            raise LedgerReadFailure(f"{name} failed: connection refused")

    def _receipt(self, *events: LedgerEvent) -> LedgerReceipt:
        if self.fail_submits:
            raise LedgerCallFailure("execution reverted", code="CALL_REVERTED")
        n = next(self._tx)
        tx_hash = f"0x{n:064x}"
        if self.leave_unconfirmed:
            raise LedgerConfirmationPending(f"Transaction {tx_hash} not confirmed", tx_hash=tx_hash)
        return LedgerReceipt(
            tx_hash=tx_hash,
            status=1,
            block_number=100 + n,
            gas_used="21000",
            events=list(events) if self.emit_events else [],
        )

    def _plot(self, plot_id: int) -> dict:
        if not 1 <= plot_id <= len(self.plots):
            raise LedgerReadFailure(f"getPlotAccountInfo failed: plot {plot_id} does not exist")
        return self.plots[plot_id - 1]

    @staticmethod
    def _plot_record(plot: dict, plot_id=None) -> LedgerPlot:
        return LedgerPlot(
            plot_id=None if plot_id is None else str(plot_id),
            plot_account=plot["account"],
            holder=plot["holder"],
            plot_name=plot["name"],
            parcel_ids=[str(p) for p in plot["parcel_ids"]],
            parcel_amounts=[str(a) for a in plot["parcel_amounts"]],
        )

    @staticmethod
    def _request_record(req: dict, request_id=None) -> LedgerTransferRequest:
        return LedgerTransferRequest(
            request_id=None if request_id is None else str(request_id),
            sender=req["from"],
            recipient=req["to"],
            parcel_id=str(req["parcel_id"]),
            parcel_amount=str(req["parcel_amount"]),
            is_plot_transfer=req["is_plot_transfer"],
            plot_id=str(req["plot_id"]),
            timestamp="1700000000",
            status="0",
            land_authority_approved=req[ApprovalRole.LAND_AUTHORITY],
            lawyer_approved=req[ApprovalRole.LAWYER],
            bank_approved=req[ApprovalRole.BANK],
        )

    # ── seeding ───────────────────────────────────────────────────────────────

    def add_land(self, block: str, parcel: str, supply: int = 1000) -> int:
        self.lands.append(LedgerLand(None, block, parcel, f"ipfs://{block}/{parcel}", str(supply), []))
        return len(self.lands)

    def add_plot(self, name: str, holder: str = SIGNER) -> int:
        self.plots.append(
            {
                "account": f"0x{len(self.plots) + 1:040x}",
                "holder": holder,
                "name": name,
                "parcel_ids": [1],
                "parcel_amounts": [100],
            }
        )
        return len(self.plots)

    def add_request(self, plot_id: int, to: str = BUYER, is_plot_transfer: bool = True) -> int:
        self.requests.append(
            {
                "from": self._plot(plot_id)["holder"],
                "to": to,
                "parcel_id": 0,
                "parcel_amount": 0,
                "is_plot_transfer": is_plot_transfer,
                "plot_id": plot_id,
                ApprovalRole.LAND_AUTHORITY: False,
                ApprovalRole.BANK: False,
                ApprovalRole.LAWYER: False,
            }
        )
        return len(self.requests)

    # ── reads ─────────────────────────────────────────────────────────────────

    async def read_all_land_info(self) -> list[LedgerLand]:
        self._check_reads("getAllLandInfo")
        return list(self.lands)

    async def read_all_plot_info(self) -> list[LedgerPlot]:
        self._check_reads("getAllPlotAccountInfo")
        return [self._plot_record(p) for p in self.plots]

    async def read_all_transfer_requests(self) -> list[LedgerTransferRequest]:
        self._check_reads("getAllTransferRequestInfo")
        return [self._request_record(r) for r in self.requests]

    async def read_land_info(self, token_id: int) -> LedgerLand:
        self._check_reads("getLandInfo")
        land = self.lands[token_id - 1]
        return LedgerLand(str(token_id), land.block_name, land.parcel_name, land.metadata_uri,
                          land.total_supply, land.plot_allocation)

    async def read_plot_info(self, plot_id: int) -> LedgerPlot:
        self._check_reads("getPlotAccountInfo")
        return self._plot_record(self._plot(plot_id), plot_id)

    async def read_plot_holder(self, plot_id: int) -> str | None:
        return (await self.read_plot_info(plot_id)).holder

    async def read_request_status(self, request_id: int) -> LedgerTransferRequest:
        self._check_reads("requestStatus")
        return self._request_record(self.requests[request_id - 1], request_id)

    async def read_current_counters(self) -> LedgerCounters:
        self._check_reads("getCurrentPlotAndTokenIdInfo")
        return LedgerCounters(plot_counter=str(len(self.plots)), token_counter=str(len(self.lands)))

    async def read_treasury_wallet(self) -> str:
        self._check_reads("treasuryWallet")
        return self.treasury

    async def read_plot_list(self) -> list[str]:
        self._check_reads("getListOfTotalPlots")
        return [str(i) for i in range(1, len(self.plots) + 1)]

    async def read_token_uri(self, token_id: int) -> str:
        self._check_reads("getBlockParcelTokenURI")
        return self.lands[token_id - 1].metadata_uri

    async def read_parcel_shareholders(self, plot_id: int, parcel_id: int) -> list[str]:
        self._check_reads("getPlotAccountParcelShareholders")
        return [self._plot(plot_id)["holder"]]

    async def read_user_shares(self, plot_id: int, parcel_id: int, user: str) -> str:
        self._check_reads("getPlotAccountUserShares")
        return "100"

    async def read_parcel_total_shares(self, plot_id: int, parcel_id: int) -> str:
        self._check_reads("getPlotAccountParcelTotalShares")
        return "400"

    async def read_user_parcels(self, plot_id: int, user: str, parcel_id: int = 0) -> list[str]:
        self._check_reads("getPlotAccountUserParcels")
        return [str(p) for p in self._plot(plot_id)["parcel_ids"]]

    async def read_ownership_percentage(self, plot_id: int, user: str) -> str:
        self._check_reads("getOwnershipPercentage")
        return self.ownership_bps

    async def read_block_number(self) -> int:
        self._check_reads("eth_blockNumber")
        return 12345

    # ── writes ────────────────────────────────────────────────────────────────

    async def submit_create_token(self, block_name, parcel_name, uri, total_supply) -> LedgerReceipt:
        receipt = self._receipt(LedgerEvent("TokenCreated", {"tokenId": str(len(self.lands) + 1)}))
        self.lands.append(LedgerLand(None, block_name, parcel_name, uri, str(total_supply), []))
        return receipt

    async def submit_create_plot(self, plot_name, parcel_ids, parcel_amounts) -> LedgerReceipt:
        plot_id = len(self.plots) + 1
        receipt = self._receipt(
            LedgerEvent("PlotInitiated", {"plotId": str(plot_id), "owner": SIGNER, "plotName": plot_name})
        )
        self.plots.append(
            {
                "account": f"0x{plot_id:040x}",
                "holder": SIGNER,
                "name": plot_name,
                "parcel_ids": list(parcel_ids),
                "parcel_amounts": list(parcel_amounts),
            }
        )
        return receipt

    async def _create_request(self, plot_id: int, to: str, is_plot_transfer: bool, parcel_id=0, amount=0):
        self._plot(plot_id)
        request_id = len(self.requests) + 1
        receipt = self._receipt(
            LedgerEvent("TransferRequestCreated", {"requestId": str(request_id), "plotId": str(plot_id)})
        )
        self.add_request(plot_id, to, is_plot_transfer)
        self.requests[-1].update(parcel_id=parcel_id, parcel_amount=amount)
        return receipt

    async def submit_request_plot_transfer(self, plot_id, to) -> LedgerReceipt:
        return await self._create_request(plot_id, to, True)

    async def submit_request_parcel_transfer(self, parcel_id, amount, to, plot_id) -> LedgerReceipt:
        return await self._create_request(plot_id, to, False, parcel_id, amount)

    async def submit_approve_and_execute(self, signer_address, request_id, role) -> LedgerReceipt:
        if not 1 <= request_id <= len(self.requests):
            raise LedgerCallFailure("execution reverted: invalid request", code="CALL_REVERTED")
        receipt = self._receipt()
        request = self.requests[request_id - 1]
        request[ApprovalRole(role)] = True
        fully_approved = all(request[r] for r in ApprovalRole)
        if fully_approved and self.execute_transfers and request["is_plot_transfer"]:
            self._plot(request["plot_id"])["holder"] = request["to"]
        return receipt

    async def close(self) -> None:
        pass


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker[AsyncSession]]:
    """Fresh SQLite file per test; mirror tables are left for the code under test to create."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'mirror.db'}", poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(lambda c: ApiCallLog.__table__.create(c, checkfirst=True))
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
async def legacy_plot_table(session_factory) -> None:
    """A populated plot_registry from before parcel_amounts existed."""
    async with session_factory() as session:
        await session.execute(
            text(
                "CREATE TABLE plot_registry ("
                "plot_id BIGINT PRIMARY KEY, plot_name VARCHAR(255) NOT NULL, "
                "current_holder VARCHAR(42) NOT NULL, parcel_ids JSON NOT NULL, "
                "created_at DATETIME, updated_at DATETIME)"
            )
        )
        await session.execute(
            text(
                "INSERT INTO plot_registry (plot_id, plot_name, current_holder, parcel_ids) "
                f"VALUES (1, 'Legacy', '{SIGNER}', '[1, 2]')"
            )
        )
        await session.commit()


@pytest.fixture
def container(ledger: FakeLedger, session_factory) -> GatewayContainer:
    return GatewayContainer.build(ledger, session_factory, call_log_enabled=False)


@pytest.fixture
async def client(container: GatewayContainer) -> AsyncGenerator[AsyncClient]:
    # ASGITransport does not run the lifespan; inject the container directly
    app.state.container = container
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as ac:
            yield ac
    finally:
        del app.state.container
