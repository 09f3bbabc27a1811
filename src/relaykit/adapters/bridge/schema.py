"""Pydantic models describing the bridge JSON payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from relaykit.domain.types import UNLIMITED_ACCESS


def _to_int(value: object) -> object:
    # amounts travel as decimal strings to survive JavaScript number precision
    if isinstance(value, str):
        return int(value.strip())
    return value


class BridgeBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ErrorDetail(BridgeBaseModel):
    message: str
    code: str | None = None
    cause: str | None = None


class ErrorResponse(BridgeBaseModel):
    error: ErrorDetail


class ProtectedDataPayload(BridgeBaseModel):
    address: str
    owner: str
    name: str = ""
    schema_: dict[str, str] = Field(default_factory=dict, alias="schema")
    creation_timestamp: int | None = Field(default=None, alias="creationTimestamp")


class ProtectedDataListResponse(BridgeBaseModel):
    protected_data: list[ProtectedDataPayload] = Field(alias="protectedData")


class GrantedAccessPayload(BridgeBaseModel):
    dataset: str
    apprestrict: str
    requesterrestrict: str
    datasetprice: int = 0
    volume: int = UNLIMITED_ACCESS
    sign: str | None = None

    _parse_price = field_validator("datasetprice", "volume", mode="before")(_to_int)


class GrantedAccessResponse(BridgeBaseModel):
    count: int
    granted_access: list[GrantedAccessPayload] = Field(alias="grantedAccess")


class RevokeAllResponse(BridgeBaseModel):
    revoked: list[str]


class ContactPayload(BridgeBaseModel):
    address: str
    owner: str | None = None
    access_grant_timestamp: str | None = Field(default=None, alias="accessGrantTimestamp")


class ContactsResponse(BridgeBaseModel):
    contacts: list[ContactPayload]


class SendResponse(BridgeBaseModel):
    task_id: str = Field(alias="taskId")


class BalanceResponse(BridgeBaseModel):
    stake: int
    locked: int

    _parse_amounts = field_validator("stake", "locked", mode="before")(_to_int)


class TransactionResponse(BridgeBaseModel):
    amount: int
    tx_hash: str | None = Field(default=None, alias="txHash")

    _parse_amount = field_validator("amount", mode="before")(_to_int)
