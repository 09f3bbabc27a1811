"""Port for the data-protection service."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from relaykit.domain.types import (
        AccessGrant,
        FieldValue,
        GrantSpec,
        ProtectedResource,
        Schema,
    )


@runtime_checkable
class DataProtector(Protocol):
    """Encrypts personal data and manages who may use it."""

    async def list_resources(self, owner: str, schema: Schema) -> Sequence[ProtectedResource]:
        """Resources owned by ``owner`` carrying at least ``schema``.

        Listing order is not guaranteed to be stable across calls.
        """
        ...

    async def create_resource(
        self, name: str, fields: Mapping[str, FieldValue]
    ) -> ProtectedResource: ...

    async def grant_access(self, resource: str, grant: GrantSpec) -> AccessGrant:
        """Not idempotent: calling twice may create duplicate grants."""
        ...

    async def list_grants(self, resource: str, app: str, user: str) -> Sequence[AccessGrant]: ...

    async def revoke_grant(self, grant: AccessGrant) -> None: ...

    async def revoke_all_grants(self, resource: str, app: str, user: str) -> int:
        """Revoke every grant of the triple; fails if none exist."""
        ...
