"""Explicit object graph for the gateway.

Built once in the app lifespan and stored on ``app.state.container``.
Route handlers reach it through the FastAPI dependencies below; tests
assign a container holding a fake ledger instead.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from land_gateway.core.config import Settings
from land_gateway.core.ledger import LedgerClient
from land_gateway.core.ledger_abi import load_abi
from land_gateway.modules.mirror.reconciliation import ReconciliationEngine
from land_gateway.modules.mirror.store import MirrorStores
from land_gateway.modules.transfers.approvals import ApprovalAggregator


@dataclass
class GatewayContainer:
    ledger: Any
    session_factory: async_sessionmaker[AsyncSession]
    stores: MirrorStores
    reconciler: ReconciliationEngine
    approvals: ApprovalAggregator
    call_log_enabled: bool = True
    # serialises "read plot counter, submit plotInitiate"
    plot_lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    @classmethod
    def build(
        cls,
        ledger: Any,
        session_factory: async_sessionmaker[AsyncSession],
        call_log_enabled: bool = True,
    ) -> "GatewayContainer":
        stores = MirrorStores(session_factory)
        reconciler = ReconciliationEngine(ledger, stores)
        return cls(
            ledger=ledger,
            session_factory=session_factory,
            stores=stores,
            reconciler=reconciler,
            approvals=ApprovalAggregator(ledger, stores, reconciler),
            call_log_enabled=call_log_enabled,
        )


def build_ledger_client(settings: Settings) -> LedgerClient:
    return LedgerClient(
        rpc_url=settings.RPC_URL,
        contract_address=settings.CONTRACT_ADDRESS,
        private_key=settings.PRIVATE_KEY or None,
        abi=load_abi(settings.LEDGER_ABI_PATH),
        request_timeout=settings.LEDGER_REQUEST_TIMEOUT,
        confirmation_timeout=settings.LEDGER_CONFIRMATION_TIMEOUT,
        poll_latency=settings.LEDGER_POLL_LATENCY,
    )


def get_container(request: Request) -> GatewayContainer:
    return request.app.state.container


def get_ledger(request: Request) -> Any:
    return get_container(request).ledger
