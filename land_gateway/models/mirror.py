"""Relational mirror of ledger state: land parcels, plots, transfer requests.

Primary keys are the ledger-assigned sequential ids; the mirror never
generates its own. Large ledger integers (supplies, share amounts) are kept
as decimal strings.
"""

from datetime import datetime

from sqlalchemy import JSON, BigInteger, Boolean, Enum, String, Text, false
from sqlalchemy.orm import Mapped, mapped_column

from land_gateway.core.database import Base
from land_gateway.models.base import ModelMixin, created_at_column, updated_at_column
from land_gateway.models.enums import MirrorTableName, TransferStatus


class LandParcel(Base, ModelMixin):
    """One fungible block/parcel land token."""

    __tablename__ = MirrorTableName.LAND.value

    token_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    parcel_name: Mapped[str] = mapped_column(String(255), nullable=False)
    block_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    total_supply: Mapped[str] = mapped_column(String(78), nullable=False)
    metadata_uri: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = created_at_column()


class Plot(Base, ModelMixin):
    """A named bundle of parcel shares held by one address."""

    __tablename__ = MirrorTableName.PLOT.value

    plot_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    plot_name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    current_holder: Mapped[str] = mapped_column(String(42), nullable=False)
    # index-aligned: parcel_amounts[i] belongs to parcel_ids[i]
    parcel_ids: Mapped[list[int]] = mapped_column(JSON, nullable=False)
    parcel_amounts: Mapped[list[str]] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = created_at_column()
    updated_at: Mapped[datetime] = updated_at_column()


class TransferRequest(Base, ModelMixin):
    """A plot or parcel-share transfer awaiting three approvals."""

    __tablename__ = MirrorTableName.REQUEST.value

    request_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    plot_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    is_plot_transfer: Mapped[bool] = mapped_column(Boolean, nullable=False)
    land_authority_approved: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=false(), nullable=False
    )
    bank_approved: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=false(), nullable=False
    )
    lawyer_approved: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=false(), nullable=False
    )
    current_status: Mapped[TransferStatus] = mapped_column(
        Enum(TransferStatus, native_enum=False, length=20),
        default=TransferStatus.PENDING,
        nullable=False,
    )
    created_at: Mapped[datetime] = created_at_column()
    updated_at: Mapped[datetime] = updated_at_column()

    @property
    def fully_approved(self) -> bool:
        return self.land_authority_approved and self.bank_approved and self.lawyer_approved
