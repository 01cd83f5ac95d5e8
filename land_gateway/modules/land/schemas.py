"""Land token and plot schemas."""

from pydantic import Field, model_validator

from land_gateway.schemas.common import CamelModel


class CreateTokenBody(CamelModel):
    block_info: str = Field(min_length=1)
    parcel_info: str = Field(min_length=1)
    token_uri: str = Field(min_length=1, alias="tokenURI")
    total_supply: int = Field(gt=0)


class CreatePlotBody(CamelModel):
    plot_name: str = Field(min_length=1)
    parcel_ids: list[int]
    parcel_amounts: list[int]

    @model_validator(mode="after")
    def _aligned(self) -> "CreatePlotBody":
        if not self.parcel_ids or len(self.parcel_ids) != len(self.parcel_amounts):
            raise ValueError("parcelIds and parcelAmounts must be non-empty arrays of equal length")
        if any(p <= 0 for p in self.parcel_ids) or any(a <= 0 for a in self.parcel_amounts):
            raise ValueError("parcel ids and amounts must be positive")
        return self


class TokenCreated(CamelModel):
    token_id: int | None
    block_info: str
    parcel_info: str
    token_uri: str = Field(alias="tokenURI")
    total_supply: str
    transaction: dict


class PlotCreated(CamelModel):
    plot_id: int
    plot_name: str
    holder: str | None
    parcel_ids: list[int]
    parcel_amounts: list[str]
    id_source: str          # "event" or "counter"
    transaction: dict
