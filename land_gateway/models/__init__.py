"""SQLAlchemy models package; import all models so Base.metadata is populated."""

from land_gateway.models.base import ModelMixin, LogEntryModel
from land_gateway.models.call_log import ApiCallLog
from land_gateway.models.enums import (
    ApprovalRole,
    MirrorTableName,
    TransferStatus,
    compute_transfer_status,
)
from land_gateway.models.mirror import LandParcel, Plot, TransferRequest

__all__ = [
    "ApiCallLog",
    "ApprovalRole",
    "LandParcel",
    "MirrorTableName",
    "ModelMixin",
    "Plot",
    "LogEntryModel",
    "TransferRequest",
    "TransferStatus",
    "compute_transfer_status",
]
