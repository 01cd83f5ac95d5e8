"""Bundled ABI of the land registry contract (the subset the gateway calls)."""

import json
from pathlib import Path
from typing import Any


def _arg(name: str, type_: str, components: list[dict] | None = None, indexed: bool | None = None) -> dict:
    arg: dict[str, Any] = {"name": name, "type": type_, "internalType": type_}
    if components is not None:
        arg["components"] = components
    if indexed is not None:
        arg["indexed"] = indexed
    return arg


def _fn(name: str, inputs: list[dict], outputs: list[dict], mutability: str = "view") -> dict:
    return {
        "type": "function",
        "name": name,
        "stateMutability": mutability,
        "inputs": inputs,
        "outputs": outputs,
    }


def _event(name: str, inputs: list[dict]) -> dict:
    return {"type": "event", "name": name, "anonymous": False, "inputs": inputs}


LAND_INFO = [
    _arg("blockInfo", "string"),
    _arg("parcelInfo", "string"),
    _arg("blockParcelTokenURI", "string"),
    _arg("totalSupply", "uint256"),
    _arg("plotAllocation", "uint256[]"),
]

PLOT_ACCOUNT = [
    _arg("plotAccount", "address"),
    _arg("plotOwner", "address"),
    _arg("plotName", "string"),
    _arg("parcelIds", "uint256[]"),
    _arg("parcelAmounts", "uint256[]"),
]

TRANSFER_REQUEST = [
    _arg("from", "address"),
    _arg("to", "address"),
    _arg("parcelId", "uint256"),
    _arg("parcelAmount", "uint256"),
    _arg("isPlotTransfer", "bool"),
    _arg("plotId", "uint256"),
    _arg("timestamp", "uint256"),
    _arg("status", "uint8"),
    _arg("landAuthorityApproved", "bool"),
    _arg("lawyerApproved", "bool"),
    _arg("bankApproved", "bool"),
]

LAND_FIELDS = tuple(a["name"] for a in LAND_INFO)
PLOT_FIELDS = tuple(a["name"] for a in PLOT_ACCOUNT)
REQUEST_FIELDS = tuple(a["name"] for a in TRANSFER_REQUEST)

EVENT_NAMES = ("TokenCreated", "PlotInitiated", "TransferRequestCreated")

DEFAULT_ABI: list[dict] = [
    # reads
    _fn("getAllLandInfo", [], [_arg("", "tuple[]", LAND_INFO)]),
    _fn("getLandInfo", [_arg("tokenId", "uint256")], [_arg("", "tuple", LAND_INFO)]),
    _fn("getAllPlotAccountInfo", [], [_arg("", "tuple[]", PLOT_ACCOUNT)]),
    _fn("getPlotAccountInfo", [_arg("plotId", "uint256")], [_arg("", "tuple", PLOT_ACCOUNT)]),
    _fn("getAllTransferRequestInfo", [], [_arg("", "tuple[]", TRANSFER_REQUEST)]),
    _fn("requestStatus", [_arg("requestId", "uint256")], [_arg("", "tuple", TRANSFER_REQUEST)]),
    _fn(
        "getCurrentPlotAndTokenIdInfo",
        [],
        [_arg("plotId", "uint256"), _arg("tokenId", "uint256")],
    ),
    _fn("treasuryWallet", [], [_arg("", "address")]),
    _fn("getListOfTotalPlots", [], [_arg("", "uint256[]")]),
    _fn("getBlockParcelTokenURI", [_arg("tokenId", "uint256")], [_arg("", "string")]),
    _fn(
        "getPlotAccountParcelShareholders",
        [_arg("plotId", "uint256"), _arg("parcelId", "uint256")],
        [_arg("", "address[]")],
    ),
    _fn(
        "getPlotAccountUserShares",
        [_arg("plotId", "uint256"), _arg("parcelId", "uint256"), _arg("user", "address")],
        [_arg("", "uint256")],
    ),
    _fn(
        "getPlotAccountParcelTotalShares",
        [_arg("plotId", "uint256"), _arg("parcelId", "uint256")],
        [_arg("", "uint256")],
    ),
    _fn(
        "getPlotAccountUserParcels",
        [_arg("plotId", "uint256"), _arg("user", "address"), _arg("parcelId", "uint256")],
        [_arg("", "uint256[]")],
    ),
    _fn(
        "getOwnershipPercentage",
        [_arg("plotId", "uint256"), _arg("user", "address")],
        [_arg("", "uint256")],
    ),
    # writes
    _fn(
        "createBlockParcelToken",
        [
            _arg("blockInfo", "string"),
            _arg("parcelInfo", "string"),
            _arg("tokenURI", "string"),
            _arg("totalSupply", "uint256"),
        ],
        [],
        "nonpayable",
    ),
    _fn(
        "plotInitiate",
        [
            _arg("plotName", "string"),
            _arg("parcelIds", "uint256[]"),
            _arg("parcelAmounts", "uint256[]"),
        ],
        [],
        "nonpayable",
    ),
    _fn(
        "requestForWholePlotTransfer",
        [_arg("plotId", "uint256"), _arg("to", "address")],
        [],
        "nonpayable",
    ),
    _fn(
        "requestForParcelTransfer",
        [
            _arg("parcelId", "uint256"),
            _arg("parcelAmount", "uint256"),
            _arg("to", "address"),
            _arg("plotId", "uint256"),
        ],
        [],
        "nonpayable",
    ),
    _fn(
        "delegateApproveAndTransfer",
        [_arg("signer", "address"), _arg("requestId", "uint256"), _arg("role", "uint8")],
        [],
        "nonpayable",
    ),
    # events
    _event(
        "TokenCreated",
        [
            _arg("tokenId", "uint256", indexed=True),
            _arg("blockInfo", "string", indexed=False),
            _arg("parcelInfo", "string", indexed=False),
            _arg("totalSupply", "uint256", indexed=False),
        ],
    ),
    _event(
        "PlotInitiated",
        [
            _arg("plotId", "uint256", indexed=True),
            _arg("owner", "address", indexed=True),
            _arg("plotName", "string", indexed=False),
        ],
    ),
    _event(
        "TransferRequestCreated",
        [
            _arg("requestId", "uint256", indexed=True),
            _arg("from", "address", indexed=True),
            _arg("to", "address", indexed=True),
            _arg("plotId", "uint256", indexed=False),
            _arg("isPlotTransfer", "bool", indexed=False),
        ],
    ),
]


def load_abi(path: str | None) -> list[dict]:
    """ABI from a JSON file (bare list or Hardhat/Foundry artifact), else the bundled one."""
    if not path:
        return DEFAULT_ABI
    parsed = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(parsed, dict):
        parsed = parsed.get("abi", [])
    if not isinstance(parsed, list):
        raise ValueError(f"ABI file {path} does not contain an ABI list")
    return parsed
