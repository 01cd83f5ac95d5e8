"""Transfer request and approval schemas."""

from pydantic import Field

from land_gateway.schemas.common import CamelModel

ADDRESS_PATTERN = r"^0x[a-fA-F0-9]{40}$"


class PlotTransferBody(CamelModel):
    plot_id: int = Field(gt=0)
    to: str = Field(pattern=ADDRESS_PATTERN)


class ParcelTransferBody(CamelModel):
    parcel_id: int = Field(gt=0)
    parcel_amount: int = Field(gt=0)
    to: str = Field(pattern=ADDRESS_PATTERN)
    plot_id: int = Field(gt=0)


class ApprovalBody(CamelModel):
    signer_wallet: str
    request_id: int = Field(gt=0)
    role: int   # 1 Land Authority, 2 Bank, 3 Lawyer


class TransferRequestCreated(CamelModel):
    request_id: int | None
    plot_id: int
    is_plot_transfer: bool
    to: str
    parcel_id: int | None = None
    parcel_amount: str | None = None
    transaction: dict


class ApprovalResult(CamelModel):
    signer_wallet: str
    request_id: int
    role: int
    role_name: str
    approved: bool
    current_status: str | None = None
    ownership_synced: bool = False
    previous_holder: str | None = None
    current_holder: str | None = None
    transaction: dict
