"""Response envelope shared by every endpoint."""

import enum
from datetime import datetime, timezone
from typing import Any

from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Schemas exposed over HTTP use camelCase field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OperationStatus(str, enum.Enum):
    SUCCESS = "SUCCESS"
    PARTIAL_SUCCESS = "PARTIAL_SUCCESS"   # ledger confirmed, mirror stale
    PENDING_CONFIRMATION = "PENDING_CONFIRMATION"
    FAILURE = "FAILURE"


_HTTP_STATUS = {
    OperationStatus.SUCCESS: 200,
    OperationStatus.PARTIAL_SUCCESS: 207,
    OperationStatus.PENDING_CONFIRMATION: 202,
}


class ErrorInfo(BaseModel):
    message: str
    code: str | None = None
    details: Any = None


class OperationResult(BaseModel):
    success: bool
    status: OperationStatus
    message: str
    data: Any = None
    warnings: list[str] = Field(default_factory=list)
    error: ErrorInfo | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def ok(cls, message: str, data: Any = None, warnings: list[str] | None = None) -> "OperationResult":
        """SUCCESS, or PARTIAL_SUCCESS when any warning was collected."""
        if warnings:
            return cls(
                success=True,
                status=OperationStatus.PARTIAL_SUCCESS,
                message=message,
                data=data,
                warnings=list(warnings),
            )
        return cls(success=True, status=OperationStatus.SUCCESS, message=message, data=data)

    @classmethod
    def pending(cls, message: str, data: Any = None) -> "OperationResult":
        return cls(
            success=False,
            status=OperationStatus.PENDING_CONFIRMATION,
            message=message,
            data=data,
        )

    @classmethod
    def failure(cls, message: str, code: str | None = None, details: Any = None) -> "OperationResult":
        return cls(
            success=False,
            status=OperationStatus.FAILURE,
            message=message,
            error=ErrorInfo(message=message, code=code, details=details),
        )

    def as_response(self) -> JSONResponse:
        status_code = _HTTP_STATUS.get(self.status, 500)
        return JSONResponse(status_code=status_code, content=self.model_dump(mode="json"))


def dump(model: BaseModel | list[BaseModel] | None) -> Any:
    """Serialize response data with camelCase aliases."""
    if model is None:
        return None
    if isinstance(model, list):
        return [m.model_dump(mode="json", by_alias=True) for m in model]
    return model.model_dump(mode="json", by_alias=True)
