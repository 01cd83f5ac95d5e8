"""Domain enums for mirrored ledger state."""

import enum


class TransferStatus(str, enum.Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class ApprovalRole(int, enum.Enum):
    """Approver roles, numbered as the registry contract expects them."""

    LAND_AUTHORITY = 1
    BANK = 2
    LAWYER = 3

    @property
    def label(self) -> str:
        return _ROLE_LABELS[self]

    @property
    def column(self) -> str:
        """Approval flag column on the transfer request mirror."""
        return _ROLE_COLUMNS[self]


_ROLE_LABELS = {
    ApprovalRole.LAND_AUTHORITY: "Land Authority",
    ApprovalRole.BANK: "Bank",
    ApprovalRole.LAWYER: "Lawyer",
}

_ROLE_COLUMNS = {
    ApprovalRole.LAND_AUTHORITY: "land_authority_approved",
    ApprovalRole.BANK: "bank_approved",
    ApprovalRole.LAWYER: "lawyer_approved",
}


class MirrorTableName(str, enum.Enum):
    LAND = "land_parcel_registry"
    PLOT = "plot_registry"
    REQUEST = "transfer_request_registry"


def compute_transfer_status(land_authority: bool, bank: bool, lawyer: bool) -> TransferStatus:
    approvals = (land_authority, bank, lawyer)
    if all(approvals):
        return TransferStatus.COMPLETED
    if any(approvals):
        return TransferStatus.IN_PROGRESS
    return TransferStatus.PENDING
