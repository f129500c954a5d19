"""
Dexcom Share wire models.
"""
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ShareGlucoseValue(BaseModel):
    """
    Raw reading as returned by ReadPublisherLatestGlucoseValues.
    """
    model_config = ConfigDict(extra="ignore")

    WT: str = Field(default="", description="Wall time, e.g. Date(1700000000000)")
    ST: str = Field(default="", description="System time")
    DT: str = Field(default="", description="Display time")
    Value: int = Field(default=0, description="Glucose value in mg/dL")
    Trend: str = Field(default="", description="Trend code as sent by the service")

    @field_validator("WT", "ST", "DT", "Trend", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value)

    @field_validator("Value", mode="before")
    @classmethod
    def _coerce_value(cls, value: Any) -> int:
        try:
            return int(round(float(value)))
        except (TypeError, ValueError, OverflowError):
            return 0


class ShareErrorBody(BaseModel):
    """
    Error payload returned with 4xx/5xx responses.
    """
    model_config = ConfigDict(extra="ignore")

    Code: Optional[str] = Field(default=None, description="Machine-readable error code")
    Message: Optional[str] = Field(default=None, description="Human-readable message")


# Request models
class AuthenticatePublisherAccountRequest(BaseModel):
    """
    Request body for AuthenticatePublisherAccount.
    """
    accountName: str = Field(description="Share username")
    password: str = Field(description="Share password")
    applicationId: str = Field(description="Registered application id")


class LoginPublisherAccountByIdRequest(BaseModel):
    """
    Request body for LoginPublisherAccountById.
    """
    accountId: str = Field(description="Account id from AuthenticatePublisherAccount")
    password: str = Field(description="Share password")
    applicationId: str = Field(description="Registered application id")
