"""Mirror row and admin response schemas."""

from datetime import datetime

from pydantic import ConfigDict

from land_gateway.models.enums import TransferStatus
from land_gateway.schemas.common import CamelModel


class MirrorRow(CamelModel):
    model_config = ConfigDict(from_attributes=True)


class LandParcelOut(MirrorRow):
    token_id: int
    parcel_name: str
    block_name: str
    total_supply: str       # decimal string, uint256-safe
    metadata_uri: str
    created_at: datetime | None = None


class PlotOut(MirrorRow):
    plot_id: int
    plot_name: str
    current_holder: str
    parcel_ids: list[int]
    parcel_amounts: list[str]
    created_at: datetime | None = None
    updated_at: datetime | None = None


class TransferRequestOut(MirrorRow):
    request_id: int
    plot_id: int
    is_plot_transfer: bool
    land_authority_approved: bool
    bank_approved: bool
    lawyer_approved: bool
    current_status: TransferStatus
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CallLogOut(MirrorRow):
    method: str
    path: str
    query: str | None = None
    status_code: int
    duration_ms: float
    created_at: datetime | None = None
