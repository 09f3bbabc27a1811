"""Domain types shared by the reconciler, the dispatcher and the account flows."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType
from typing import TYPE_CHECKING

from .errors import ValidationError

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

type FieldValue = str | bool | int | float
type Schema = Mapping[str, str]

UNLIMITED_ACCESS = 2**53 - 2
"""Remaining-use sentinel the data-protection service treats as unlimited."""

MARKER_FIELD = "created_by"
MARKER_VALUE = "relaykit"


class Channel(StrEnum):
    TELEGRAM = "telegram"
    MAIL = "mail"


class ReconciliationOutcome(StrEnum):
    ALREADY_SUBSCRIBED = "already_subscribed"
    GRANTED_TO_EXISTING = "granted_to_existing"
    CREATED_AND_GRANTED = "created_and_granted"


class DispatchMode(StrEnum):
    SEQUENTIAL = "sequential"
    CONCURRENT = "concurrent"


def schema_tag(value: object) -> str:
    """Return the schema type tag for a primitive field value."""

    # bool is a subclass of int and must be checked first
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, int):
        return "i128"
    if isinstance(value, float):
        return "f64"
    if isinstance(value, str):
        return "string"
    raise ValidationError(f"Unsupported field type: {type(value).__name__}")


def infer_schema(fields: Mapping[str, object]) -> dict[str, str]:
    return {name: schema_tag(value) for name, value in fields.items()}


def _freeze[V](mapping: Mapping[str, V] | None) -> Mapping[str, V]:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True, slots=True)
class ProtectedResource:
    """An owned container of sensitive data, identified by its address."""

    address: str
    owner: str
    schema: Schema
    name: str = ""
    fields: Mapping[str, FieldValue] = field(default_factory=dict[str, "FieldValue"])

    def __post_init__(self) -> None:
        object.__setattr__(self, "schema", _freeze(self.schema))
        object.__setattr__(self, "fields", _freeze(self.fields))

    def matches(self, schema: Schema) -> bool:
        """Exact schema match; a resource carrying extra fields does not match."""

        return dict(self.schema) == dict(schema)


@dataclass(frozen=True, slots=True)
class GrantSpec:
    authorized_app: str
    authorized_user: str
    price_per_access: int = 0
    number_of_access: int = UNLIMITED_ACCESS

    def __post_init__(self) -> None:
        if not self.authorized_app.strip():
            raise ValidationError("Authorized application address must not be empty")
        if not self.authorized_user.strip():
            raise ValidationError("Authorized user address must not be empty")
        if self.price_per_access < 0:
            raise ValidationError(f"Price per access must be >= 0, got {self.price_per_access}")
        if self.number_of_access < 1:
            raise ValidationError(f"Number of access must be >= 1, got {self.number_of_access}")

    @property
    def unlimited(self) -> bool:
        return self.number_of_access >= UNLIMITED_ACCESS


@dataclass(frozen=True, slots=True)
class AccessGrant:
    """Permission for one (resource, application, user) triple."""

    resource: str
    authorized_app: str
    authorized_user: str
    price_per_access: int = 0
    remaining_access: int = UNLIMITED_ACCESS
    identifier: str | None = None

    @property
    def unlimited(self) -> bool:
        return self.remaining_access >= UNLIMITED_ACCESS


@dataclass(frozen=True, slots=True)
class ReconciliationResult:
    resource_address: str
    outcome: ReconciliationOutcome


@dataclass(frozen=True, slots=True)
class RevocationSummary:
    resources_scanned: int = 0
    resources_failed: int = 0
    grants_found: int = 0
    grants_revoked: int = 0
    grants_failed: int = 0


@dataclass(frozen=True, slots=True)
class ChannelProfile:
    """How a messaging channel names and shapes its protected data."""

    channel: Channel
    resource_name: str
    field_name: str

    @property
    def schema(self) -> dict[str, str]:
        return {self.field_name: "string", MARKER_FIELD: "string"}

    def fields_for(self, value: str) -> dict[str, FieldValue]:
        cleaned = value.strip()
        if not cleaned:
            raise ValidationError(f"Please enter a valid {self.field_name}")
        return {self.field_name: cleaned}


CHANNEL_PROFILES: Mapping[Channel, ChannelProfile] = MappingProxyType(
    {
        Channel.TELEGRAM: ChannelProfile(
            channel=Channel.TELEGRAM,
            resource_name="web3telegram data",
            field_name="telegram_chatId",
        ),
        Channel.MAIL: ChannelProfile(
            channel=Channel.MAIL,
            resource_name="web3mail data",
            field_name="email",
        ),
    }
)


@dataclass(frozen=True, slots=True)
class DispatchTarget:
    address: str
    owner: str | None = None


@dataclass(frozen=True, slots=True)
class DispatchResult:
    """Outcome of one send operation."""

    target: DispatchTarget
    success: bool
    elapsed_seconds: float
    token: str | None = None
    error: str | None = None
    timed_out: bool = False


@dataclass(frozen=True, slots=True)
class DispatchSummary:
    total: int
    success_count: int
    failure_count: int
    min_elapsed: float
    avg_elapsed: float
    max_elapsed: float
    total_elapsed: float
    results: tuple[DispatchResult, ...]

    @classmethod
    def from_results(
        cls, results: Sequence[DispatchResult], *, total_elapsed: float
    ) -> DispatchSummary:
        ordered = tuple(results)
        completed = [result.elapsed_seconds for result in ordered if not result.timed_out]
        successes = sum(1 for result in ordered if result.success)
        if completed:
            low, high = min(completed), max(completed)
            mean = sum(completed) / len(completed)
        else:
            low = mean = high = 0.0
        return cls(
            total=len(ordered),
            success_count=successes,
            failure_count=len(ordered) - successes,
            min_elapsed=low,
            avg_elapsed=mean,
            max_elapsed=high,
            total_elapsed=total_elapsed,
            results=ordered,
        )


@dataclass(frozen=True, slots=True)
class Balance:
    """Account balance in nano units."""

    stake: int
    locked: int

    @property
    def available(self) -> int:
        return self.stake - self.locked
