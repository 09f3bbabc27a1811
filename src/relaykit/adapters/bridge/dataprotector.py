"""Data-protection port backed by the bridge."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import TYPE_CHECKING

from relaykit.domain.errors import Collaborator
from relaykit.domain.types import AccessGrant, GrantSpec, ProtectedResource

from .schema import (
    GrantedAccessPayload,
    GrantedAccessResponse,
    ProtectedDataListResponse,
    ProtectedDataPayload,
    RevokeAllResponse,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from relaykit.domain.types import FieldValue, Schema

    from .client import BridgeSession

_SERVICE = Collaborator.DATA_PROTECTOR


def _to_resource(
    payload: ProtectedDataPayload, fields: Mapping[str, FieldValue] | None = None
) -> ProtectedResource:
    return ProtectedResource(
        address=payload.address,
        owner=payload.owner,
        name=payload.name,
        schema=payload.schema_,
        fields=fields or {},
    )


def _to_grant(payload: GrantedAccessPayload) -> AccessGrant:
    return AccessGrant(
        resource=payload.dataset,
        authorized_app=payload.apprestrict,
        authorized_user=payload.requesterrestrict,
        price_per_access=payload.datasetprice,
        remaining_access=payload.volume,
        identifier=payload.sign,
    )


@dataclass(slots=True)
class BridgeDataProtector:
    session: BridgeSession

    async def list_resources(self, owner: str, schema: Schema) -> list[ProtectedResource]:
        response = await self.session.get(
            "/v1/protected-data",
            ProtectedDataListResponse,
            collaborator=_SERVICE,
            params={"owner": owner, "requiredSchema": json.dumps(dict(schema), sort_keys=True)},
        )
        return [_to_resource(item) for item in response.protected_data]

    async def create_resource(
        self, name: str, fields: Mapping[str, FieldValue]
    ) -> ProtectedResource:
        payload = await self.session.post(
            "/v1/protected-data",
            ProtectedDataPayload,
            collaborator=_SERVICE,
            body={"name": name, "data": dict(fields)},
        )
        return _to_resource(payload, fields)

    async def grant_access(self, resource: str, grant: GrantSpec) -> AccessGrant:
        payload = await self.session.post(
            "/v1/grants",
            GrantedAccessPayload,
            collaborator=_SERVICE,
            body={
                "protectedData": resource,
                "authorizedApp": grant.authorized_app,
                "authorizedUser": grant.authorized_user,
                "pricePerAccess": str(grant.price_per_access),
                "numberOfAccess": str(grant.number_of_access),
            },
        )
        return _to_grant(payload)

    async def list_grants(self, resource: str, app: str, user: str) -> list[AccessGrant]:
        response = await self.session.get(
            "/v1/grants",
            GrantedAccessResponse,
            collaborator=_SERVICE,
            params={"protectedData": resource, "authorizedApp": app, "authorizedUser": user},
        )
        return [_to_grant(item) for item in response.granted_access]

    async def revoke_grant(self, grant: AccessGrant) -> None:
        await self.session.post(
            "/v1/grants/revoke",
            RevokeAllResponse,
            collaborator=_SERVICE,
            body={
                "protectedData": grant.resource,
                "authorizedApp": grant.authorized_app,
                "authorizedUser": grant.authorized_user,
                "sign": grant.identifier,
            },
        )

    async def revoke_all_grants(self, resource: str, app: str, user: str) -> int:
        response = await self.session.post(
            "/v1/grants/revoke-all",
            RevokeAllResponse,
            collaborator=_SERVICE,
            body={"protectedData": resource, "authorizedApp": app, "authorizedUser": user},
        )
        return len(response.revoked)
