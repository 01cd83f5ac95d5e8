"""Land token and plot creation, plus ledger read-through queries."""

from __future__ import annotations

from dataclasses import asdict
from decimal import Decimal
from typing import Any

import structlog
from pydantic.alias_generators import to_camel

from land_gateway.core.dependencies import GatewayContainer
from land_gateway.core.errors import InvalidInput
from land_gateway.core.ledger import is_address
from land_gateway.modules.land.schemas import CreatePlotBody, CreateTokenBody, PlotCreated, TokenCreated
from land_gateway.modules.mirror.service import write_through
from land_gateway.schemas.common import OperationResult, dump

logger = structlog.get_logger()


async def create_token(container: GatewayContainer, body: CreateTokenBody) -> OperationResult:
    receipt = await container.ledger.submit_create_token(
        body.block_info, body.parcel_info, body.token_uri, body.total_supply
    )
    raw_id = receipt.find_arg("TokenCreated", "tokenId")
    token_id = int(raw_id) if raw_id is not None else None

    if token_id is None:
        logger.warning("land.token_id_missing", tx_hash=receipt.tx_hash)
        warnings = ["TokenCreated event not found in receipt; mirror not updated"]
    else:
        warnings = await write_through(
            container.reconciler,
            container.stores.land,
            {
                "token_id": token_id,
                "block_name": body.block_info,
                "parcel_name": body.parcel_info,
                "total_supply": str(body.total_supply),
                "metadata_uri": body.token_uri,
            },
        )

    logger.info("land.token_created", token_id=token_id, tx_hash=receipt.tx_hash)
    return OperationResult.ok(
        "Block parcel token created successfully",
        dump(
            TokenCreated(
                token_id=token_id,
                block_info=body.block_info,
                parcel_info=body.parcel_info,
                token_uri=body.token_uri,
                total_supply=str(body.total_supply),
                transaction=receipt.to_dict(),
            )
        ),
        warnings,
    )


async def create_plot(container: GatewayContainer, body: CreatePlotBody) -> OperationResult:
    """Initiate a plot. The id comes from PlotInitiated, else counter + 1."""
    ledger = container.ledger
    async with container.plot_lock:
        counters = await ledger.read_current_counters()
        receipt = await ledger.submit_create_plot(body.plot_name, body.parcel_ids, body.parcel_amounts)

    event_id = receipt.find_arg("PlotInitiated", "plotId")
    if event_id is not None:
        plot_id, id_source = int(event_id), "event"
    else:
        plot_id, id_source = int(counters.plot_counter) + 1, "counter"
        logger.warning("land.plot_id_from_counter", plot_id=plot_id, tx_hash=receipt.tx_hash)

    holder = receipt.find_arg("PlotInitiated", "owner") or ledger.signer_address
    parcel_amounts = [str(a) for a in body.parcel_amounts]
    if holder is None:
        warnings = ["Plot holder unknown; mirror not updated"]
    else:
        warnings = await write_through(
            container.reconciler,
            container.stores.plot,
            {
                "plot_id": plot_id,
                "plot_name": body.plot_name,
                "current_holder": holder,
                "parcel_ids": list(body.parcel_ids),
                "parcel_amounts": parcel_amounts,
            },
        )

    logger.info("land.plot_created", plot_id=plot_id, id_source=id_source, tx_hash=receipt.tx_hash)
    return OperationResult.ok(
        "Plot initiated successfully",
        dump(
            PlotCreated(
                plot_id=plot_id,
                plot_name=body.plot_name,
                holder=holder,
                parcel_ids=list(body.parcel_ids),
                parcel_amounts=parcel_amounts,
                id_source=id_source,
                transaction=receipt.to_dict(),
            )
        ),
        warnings,
    )


# ── Ledger read-through (no mirror writes) ────────────────────────────────────


def _camel(record: Any) -> dict[str, Any]:
    return {to_camel(key): value for key, value in asdict(record).items()}


def _require_address(address: str, label: str = "user address") -> None:
    if not is_address(address):
        raise InvalidInput(
            f"Invalid {label} format",
            details="Address must be a valid 42-character hex string starting with 0x",
        )


async def treasury_wallet(ledger: Any) -> dict[str, Any]:
    return {"treasuryWallet": await ledger.read_treasury_wallet()}


async def land_info(ledger: Any, token_id: int) -> dict[str, Any]:
    return _camel(await ledger.read_land_info(token_id))


async def plot_info(ledger: Any, plot_id: int) -> dict[str, Any]:
    return _camel(await ledger.read_plot_info(plot_id))


async def plot_list(ledger: Any) -> dict[str, Any]:
    plots = await ledger.read_plot_list()
    return {"plots": plots, "totalPlots": len(plots)}


async def token_uri(ledger: Any, token_id: int) -> dict[str, Any]:
    return {"tokenId": str(token_id), "uri": await ledger.read_token_uri(token_id)}


async def transfer_status(ledger: Any, request_id: int) -> dict[str, Any]:
    return _camel(await ledger.read_request_status(request_id))


async def current_counters(ledger: Any) -> dict[str, Any]:
    counters = await ledger.read_current_counters()
    return {"plotId": counters.plot_counter, "tokenId": counters.token_counter}


async def parcel_shareholders(ledger: Any, plot_id: int, parcel_id: int) -> dict[str, Any]:
    holders = await ledger.read_parcel_shareholders(plot_id, parcel_id)
    return {
        "plotId": str(plot_id),
        "parcelId": str(parcel_id),
        "shareholders": holders,
        "totalShareholders": len(holders),
    }


async def user_shares(ledger: Any, plot_id: int, parcel_id: int, user: str) -> dict[str, Any]:
    _require_address(user)
    return {
        "plotId": str(plot_id),
        "parcelId": str(parcel_id),
        "userAddress": user,
        "shares": await ledger.read_user_shares(plot_id, parcel_id, user),
    }


async def parcel_total_shares(ledger: Any, plot_id: int, parcel_id: int) -> dict[str, Any]:
    return {
        "plotId": str(plot_id),
        "parcelId": str(parcel_id),
        "totalShares": await ledger.read_parcel_total_shares(plot_id, parcel_id),
    }


async def user_parcels(ledger: Any, plot_id: int, user: str, parcel_id: int = 0) -> dict[str, Any]:
    _require_address(user)
    parcels = await ledger.read_user_parcels(plot_id, user, parcel_id)
    return {
        "plotId": str(plot_id),
        "userAddress": user,
        "parcelFilter": str(parcel_id),
        "parcels": parcels,
    }


def format_basis_points(bps: str) -> str:
    return f"{Decimal(bps) / 100:.2f}%"


async def ownership_percentage(ledger: Any, plot_id: int, user: str) -> dict[str, Any]:
    _require_address(user)
    bps = await ledger.read_ownership_percentage(plot_id, user)
    return {
        "plotId": str(plot_id),
        "userAddress": user,
        "ownershipPercentage": bps,
        "ownershipPercent": format_basis_points(bps),
    }
