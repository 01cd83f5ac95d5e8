"""Ledger access facade over the land registry contract.

Every integer coming back from the chain is normalised to a decimal string
so uint256 values survive JSON and float-based clients untouched. The facade
never retries: reads raise LedgerReadFailure, submissions raise
LedgerCallFailure (or LedgerConfirmationPending when no receipt arrives in
time) and the caller decides what to do.
"""

from __future__ import annotations

import asyncio
import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

import structlog
from eth_account import Account
from web3 import AsyncWeb3
from web3.exceptions import ContractLogicError, TimeExhausted
from web3.logs import DISCARD

from land_gateway.core.errors import (
    InvalidInput,
    LedgerCallFailure,
    LedgerConfirmationPending,
    LedgerReadFailure,
)
from land_gateway.core.ledger_abi import (
    EVENT_NAMES,
    LAND_FIELDS,
    PLOT_FIELDS,
    REQUEST_FIELDS,
    DEFAULT_ABI,
)

logger = structlog.get_logger()

ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")


def is_address(value: Any) -> bool:
    return isinstance(value, str) and bool(ADDRESS_RE.match(value))


def to_decimal_str(value: Any) -> str | None:
    """Render a ledger integer as a decimal string, never via float."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str):
        stripped = value.strip()
        if stripped.isdigit():
            return stripped
        if stripped.startswith(("0x", "0X")):
            return str(int(stripped, 16))
    raise ValueError(f"not a ledger integer: {value!r}")


def _normalise(value: Any) -> Any:
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, int):
        return str(value)
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if isinstance(value, Mapping):
        return {k: _normalise(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalise(v) for v in value]
    return value


def _as_mapping(value: Any, fields: Sequence[str]) -> dict[str, Any]:
    """Decoded struct to dict, whether web3 handed back a tuple or a named record."""
    if isinstance(value, Mapping):
        return dict(value)
    if hasattr(value, "_asdict"):
        return dict(value._asdict())
    if isinstance(value, (list, tuple)):
        return dict(zip(fields, value))
    raise LedgerReadFailure(f"Unexpected struct shape from ledger: {type(value).__name__}")


def _str_list(values: Any) -> list[str]:
    if not isinstance(values, (list, tuple)):
        return []
    return [to_decimal_str(v) for v in values]


# ── Ledger records ────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class LedgerLand:
    token_id: str | None
    block_name: str | None
    parcel_name: str | None
    metadata_uri: str | None
    total_supply: str | None
    plot_allocation: list[str] = field(default_factory=list)

    @classmethod
    def from_struct(cls, raw: Any, token_id: Any = None) -> "LedgerLand":
        data = _as_mapping(raw, LAND_FIELDS)
        return cls(
            token_id=to_decimal_str(token_id),
            block_name=data.get("blockInfo"),
            parcel_name=data.get("parcelInfo"),
            metadata_uri=data.get("blockParcelTokenURI"),
            total_supply=to_decimal_str(data.get("totalSupply")),
            plot_allocation=_str_list(data.get("plotAllocation")),
        )


@dataclass(frozen=True)
class LedgerPlot:
    plot_id: str | None
    plot_account: str | None
    holder: str | None
    plot_name: str | None
    parcel_ids: list[str] = field(default_factory=list)
    parcel_amounts: list[str] = field(default_factory=list)

    @classmethod
    def from_struct(cls, raw: Any, plot_id: Any = None) -> "LedgerPlot":
        data = _as_mapping(raw, PLOT_FIELDS)
        return cls(
            plot_id=to_decimal_str(plot_id),
            plot_account=data.get("plotAccount"),
            holder=data.get("plotOwner"),
            plot_name=data.get("plotName"),
            parcel_ids=_str_list(data.get("parcelIds")),
            parcel_amounts=_str_list(data.get("parcelAmounts")),
        )


@dataclass(frozen=True)
class LedgerTransferRequest:
    request_id: str | None
    sender: str | None
    recipient: str | None
    parcel_id: str | None
    parcel_amount: str | None
    is_plot_transfer: bool | None
    plot_id: str | None
    timestamp: str | None
    status: str | None
    land_authority_approved: bool = False
    lawyer_approved: bool = False
    bank_approved: bool = False

    @classmethod
    def from_struct(cls, raw: Any, request_id: Any = None) -> "LedgerTransferRequest":
        data = _as_mapping(raw, REQUEST_FIELDS)
        plot_transfer = data.get("isPlotTransfer")
        return cls(
            request_id=to_decimal_str(request_id),
            sender=data.get("from"),
            recipient=data.get("to"),
            parcel_id=to_decimal_str(data.get("parcelId")),
            parcel_amount=to_decimal_str(data.get("parcelAmount")),
            is_plot_transfer=None if plot_transfer is None else bool(plot_transfer),
            plot_id=to_decimal_str(data.get("plotId")),
            timestamp=to_decimal_str(data.get("timestamp")),
            status=to_decimal_str(data.get("status")),
            land_authority_approved=bool(data.get("landAuthorityApproved")),
            lawyer_approved=bool(data.get("lawyerApproved")),
            bank_approved=bool(data.get("bankApproved")),
        )


@dataclass(frozen=True)
class LedgerCounters:
    plot_counter: str
    token_counter: str


@dataclass(frozen=True)
class LedgerEvent:
    name: str
    args: dict[str, Any]


@dataclass(frozen=True)
class LedgerReceipt:
    tx_hash: str
    status: int
    block_number: int | None = None
    gas_used: str | None = None
    events: list[LedgerEvent] = field(default_factory=list)

    def find_arg(self, event_name: str, arg: str) -> Any:
        """First value of `arg` on the first `event_name` event, if any."""
        for event in self.events:
            if event.name == event_name and arg in event.args:
                return event.args[arg]
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "hash": self.tx_hash,
            "status": self.status,
            "blockNumber": self.block_number,
            "gasUsed": self.gas_used,
        }


# ── Client ────────────────────────────────────────────────────────────────────


class LedgerClient:
    """Async facade over the registry contract; construct once per process."""

    def __init__(
        self,
        rpc_url: str,
        contract_address: str,
        private_key: str | None = None,
        abi: list[dict] | None = None,
        request_timeout: float = 30,
        confirmation_timeout: float = 120,
        poll_latency: float = 2.0,
    ) -> None:
        if not is_address(contract_address):
            raise ValueError("CONTRACT_ADDRESS must be a 0x-prefixed 20-byte hex address")
        self._w3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(rpc_url))
        self._abi = abi or DEFAULT_ABI
        self._contract = self._w3.eth.contract(
            address=AsyncWeb3.to_checksum_address(contract_address), abi=self._abi
        )
        self._account = Account.from_key(private_key) if private_key else None
        self._request_timeout = request_timeout
        self._confirmation_timeout = confirmation_timeout
        self._poll_latency = poll_latency
        # one signer, one nonce sequence
        self._submit_lock = asyncio.Lock()
        self._event_names = [
            e["name"] for e in self._abi if e.get("type") == "event" and e.get("name") in EVENT_NAMES
        ]

    @property
    def signer_address(self) -> str | None:
        return self._account.address if self._account else None

    async def close(self) -> None:
        disconnect = getattr(self._w3.provider, "disconnect", None)
        if disconnect is not None:
            await disconnect()

    # ── reads ─────────────────────────────────────────────────────────────────

    async def _call(self, fn_name: str, *args: Any) -> Any:
        try:
            async with asyncio.timeout(self._request_timeout):
                return await getattr(self._contract.functions, fn_name)(*args).call()
        except Exception as exc:
            logger.warning("ledger.read.failed", function=fn_name, error=str(exc))
            raise LedgerReadFailure(f"{fn_name} failed: {exc or type(exc).__name__}") from exc

    async def _read(self, fn_name: str, decode: Callable[[Any], Any], *args: Any) -> Any:
        """_call, then decode; a payload that does not decode is a read failure too."""
        raw = await self._call(fn_name, *args)
        try:
            return decode(raw)
        except (TypeError, ValueError, KeyError) as exc:
            logger.warning("ledger.read.undecodable", function=fn_name, error=str(exc))
            raise LedgerReadFailure(f"{fn_name} returned an undecodable payload: {exc}") from exc

    async def read_block_number(self) -> int:
        try:
            async with asyncio.timeout(self._request_timeout):
                return await self._w3.eth.block_number
        except Exception as exc:
            raise LedgerReadFailure(f"eth_blockNumber failed: {exc or type(exc).__name__}") from exc

    async def read_land_info(self, token_id: int) -> LedgerLand:
        return await self._read(
            "getLandInfo", lambda raw: LedgerLand.from_struct(raw, token_id=token_id), token_id
        )

    async def read_all_land_info(self) -> list[LedgerLand]:
        return await self._read("getAllLandInfo", lambda raws: [LedgerLand.from_struct(r) for r in raws])

    async def read_plot_info(self, plot_id: int) -> LedgerPlot:
        return await self._read(
            "getPlotAccountInfo", lambda raw: LedgerPlot.from_struct(raw, plot_id=plot_id), plot_id
        )

    async def read_all_plot_info(self) -> list[LedgerPlot]:
        return await self._read("getAllPlotAccountInfo", lambda raws: [LedgerPlot.from_struct(r) for r in raws])

    async def read_plot_holder(self, plot_id: int) -> str | None:
        return (await self.read_plot_info(plot_id)).holder

    async def read_request_status(self, request_id: int) -> LedgerTransferRequest:
        return await self._read(
            "requestStatus",
            lambda raw: LedgerTransferRequest.from_struct(raw, request_id=request_id),
            request_id,
        )

    async def read_all_transfer_requests(self) -> list[LedgerTransferRequest]:
        return await self._read(
            "getAllTransferRequestInfo",
            lambda raws: [LedgerTransferRequest.from_struct(r) for r in raws],
        )

    async def read_current_counters(self) -> LedgerCounters:
        def decode(raw: Any) -> LedgerCounters:
            plot_counter, token_counter = raw
            return LedgerCounters(
                plot_counter=to_decimal_str(plot_counter),
                token_counter=to_decimal_str(token_counter),
            )

        return await self._read("getCurrentPlotAndTokenIdInfo", decode)

    async def read_treasury_wallet(self) -> str:
        return str(await self._call("treasuryWallet"))

    async def read_plot_list(self) -> list[str]:
        return await self._read("getListOfTotalPlots", _str_list)

    async def read_token_uri(self, token_id: int) -> str:
        return str(await self._call("getBlockParcelTokenURI", token_id))

    async def read_parcel_shareholders(self, plot_id: int, parcel_id: int) -> list[str]:
        return await self._read("getPlotAccountParcelShareholders", list, plot_id, parcel_id)

    async def read_user_shares(self, plot_id: int, parcel_id: int, user: str) -> str:
        return await self._read(
            "getPlotAccountUserShares", to_decimal_str, plot_id, parcel_id, self._checksum(user)
        )

    async def read_parcel_total_shares(self, plot_id: int, parcel_id: int) -> str:
        return await self._read("getPlotAccountParcelTotalShares", to_decimal_str, plot_id, parcel_id)

    async def read_user_parcels(self, plot_id: int, user: str, parcel_id: int = 0) -> list[str]:
        return await self._read(
            "getPlotAccountUserParcels", _str_list, plot_id, self._checksum(user), parcel_id
        )

    async def read_ownership_percentage(self, plot_id: int, user: str) -> str:
        """Ownership in basis points."""
        return await self._read(
            "getOwnershipPercentage", to_decimal_str, plot_id, self._checksum(user)
        )

    # ── writes ────────────────────────────────────────────────────────────────

    async def submit_create_token(
        self, block_name: str, parcel_name: str, uri: str, total_supply: int
    ) -> LedgerReceipt:
        return await self._submit("createBlockParcelToken", block_name, parcel_name, uri, total_supply)

    async def submit_create_plot(
        self, plot_name: str, parcel_ids: list[int], parcel_amounts: list[int]
    ) -> LedgerReceipt:
        return await self._submit("plotInitiate", plot_name, parcel_ids, parcel_amounts)

    async def submit_request_plot_transfer(self, plot_id: int, to: str) -> LedgerReceipt:
        return await self._submit("requestForWholePlotTransfer", plot_id, self._checksum(to))

    async def submit_request_parcel_transfer(
        self, parcel_id: int, amount: int, to: str, plot_id: int
    ) -> LedgerReceipt:
        return await self._submit(
            "requestForParcelTransfer", parcel_id, amount, self._checksum(to), plot_id
        )

    async def submit_approve_and_execute(
        self, signer_address: str, request_id: int, role: int
    ) -> LedgerReceipt:
        return await self._submit(
            "delegateApproveAndTransfer", self._checksum(signer_address), request_id, int(role)
        )

    @staticmethod
    def _checksum(address: str) -> str:
        if not is_address(address):
            raise InvalidInput(f"Invalid address format: {address}")
        return AsyncWeb3.to_checksum_address(address)

    async def _submit(self, fn_name: str, *args: Any) -> LedgerReceipt:
        if self._account is None:
            raise LedgerCallFailure("No signer key configured for ledger writes", code="NO_SIGNER")

        call = getattr(self._contract.functions, fn_name)(*args)
        try:
            async with self._submit_lock:
                nonce = await self._w3.eth.get_transaction_count(self._account.address, "pending")
                tx = await call.build_transaction({"from": self._account.address, "nonce": nonce})
                signed = self._account.sign_transaction(tx)
                tx_hash = await self._w3.eth.send_raw_transaction(signed.raw_transaction)
        except ContractLogicError as exc:
            logger.warning("ledger.submit.reverted", function=fn_name, error=str(exc))
            raise LedgerCallFailure(f"{fn_name} reverted: {exc}", code="CALL_REVERTED") from exc
        except Exception as exc:
            logger.error("ledger.submit.failed", function=fn_name, error=str(exc))
            raise LedgerCallFailure(f"{fn_name} submission failed: {exc}", code="SUBMIT_FAILED") from exc

        tx_hex = AsyncWeb3.to_hex(tx_hash)
        logger.info("ledger.submit.sent", function=fn_name, tx_hash=tx_hex)

        try:
            receipt = await self._w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self._confirmation_timeout, poll_latency=self._poll_latency
            )
        except TimeExhausted as exc:
            logger.warning("ledger.submit.unconfirmed", function=fn_name, tx_hash=tx_hex)
            raise LedgerConfirmationPending(
                f"Transaction {tx_hex} not confirmed within {self._confirmation_timeout}s",
                tx_hash=tx_hex,
            ) from exc
        except Exception as exc:
            raise LedgerCallFailure(
                f"Waiting for {tx_hex} failed: {exc}", code="RECEIPT_FAILED", details={"txHash": tx_hex}
            ) from exc

        if receipt["status"] != 1:
            raise LedgerCallFailure(
                f"Transaction {tx_hex} reverted", code="TX_REVERTED", details={"txHash": tx_hex}
            )

        result = LedgerReceipt(
            tx_hash=tx_hex,
            status=int(receipt["status"]),
            block_number=receipt.get("blockNumber"),
            gas_used=to_decimal_str(receipt.get("gasUsed")),
            events=self._decode_events(receipt),
        )
        logger.info(
            "ledger.submit.confirmed",
            function=fn_name,
            tx_hash=tx_hex,
            block=result.block_number,
            events=[e.name for e in result.events],
        )
        return result

    def _decode_events(self, receipt: Any) -> list[LedgerEvent]:
        events: list[LedgerEvent] = []
        for name in self._event_names:
            for decoded in getattr(self._contract.events, name)().process_receipt(receipt, errors=DISCARD):
                events.append(LedgerEvent(name=name, args=_normalise(dict(decoded["args"]))))
        return events
