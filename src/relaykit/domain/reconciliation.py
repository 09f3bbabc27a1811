"""Idempotent subscription: reuse protected data and grants before creating new ones.

The reconciler owns the decision logic only. Resources and grants belong to the
data-protection service and are re-read on every call; nothing is cached across
calls.

Candidate resources are scanned in the order the service lists them and the
first one with an existing grant wins. The service does not promise a stable
listing order, so when several matching resources exist, which one is reused
may differ between runs.
"""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from .errors import CollaboratorError, ValidationError
from .types import (
    MARKER_FIELD,
    MARKER_VALUE,
    GrantSpec,
    ProtectedResource,
    ReconciliationOutcome,
    ReconciliationResult,
    RevocationSummary,
    infer_schema,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Mapping

    from .ports.protection import DataProtector
    from .types import FieldValue, Schema

log = getLogger(__name__)

DEFAULT_RESOURCE_NAME = "relaykit data"


@dataclass(slots=True)
class ResourceReconciler:
    """Subscribe an owner to a service with the fewest possible side effects."""

    protector: DataProtector
    resource_name: str = DEFAULT_RESOURCE_NAME

    async def reconcile(
        self,
        owner: str,
        schema: Schema,
        desired_fields: Mapping[str, FieldValue],
        grant: GrantSpec,
    ) -> ReconciliationResult:
        """Ensure ``grant`` exists on a resource of ``owner`` matching ``schema``.

        At most one resource is created and at most one grant is issued.
        """

        _require_owner(owner)

        first_candidate: ProtectedResource | None = None
        async for resource in self._candidates(owner, schema):
            if first_candidate is None:
                first_candidate = resource
            if await self._has_grant(resource, grant):
                log.info(
                    "Resource %s already grants access to %s",
                    resource.address,
                    grant.authorized_app,
                )
                return ReconciliationResult(
                    resource.address, ReconciliationOutcome.ALREADY_SUBSCRIBED
                )

        if first_candidate is not None:
            log.info("Reusing resource %s, granting access", first_candidate.address)
            await self.protector.grant_access(first_candidate.address, grant)
            return ReconciliationResult(
                first_candidate.address, ReconciliationOutcome.GRANTED_TO_EXISTING
            )

        fields = _fields_for_creation(schema, desired_fields)
        created = await self.protector.create_resource(self.resource_name, fields)
        log.info("Created resource %s", created.address)
        await self.protector.grant_access(created.address, grant)
        log.info("Granted access on %s to %s", created.address, grant.authorized_app)
        return ReconciliationResult(created.address, ReconciliationOutcome.CREATED_AND_GRANTED)

    async def revoke_all(
        self,
        owner: str,
        schema: Schema,
        app: str,
        user: str,
    ) -> RevocationSummary:
        """Revoke every grant the (app, user) pair holds on the owner's matching resources."""

        _require_owner(owner)

        scanned = resources_failed = found = revoked = failed = 0
        async for resource in self._candidates(owner, schema):
            scanned += 1
            try:
                grants = await self.protector.list_grants(resource.address, app, user)
            except CollaboratorError as exc:
                resources_failed += 1
                log.warning("Could not list grants for %s: %s", resource.address, exc)
                continue

            found += len(grants)
            for access in grants:
                try:
                    await self.protector.revoke_grant(access)
                except CollaboratorError as exc:
                    failed += 1
                    log.warning("Could not revoke grant on %s: %s", resource.address, exc)
                else:
                    revoked += 1

        summary = RevocationSummary(
            resources_scanned=scanned,
            resources_failed=resources_failed,
            grants_found=found,
            grants_revoked=revoked,
            grants_failed=failed,
        )
        log.info(
            "Revocation finished: scanned=%s, found=%s, revoked=%s, failed=%s",
            summary.resources_scanned,
            summary.grants_found,
            summary.grants_revoked,
            summary.grants_failed,
        )
        return summary

    async def _candidates(self, owner: str, schema: Schema) -> AsyncIterator[ProtectedResource]:
        # the service filters by required fields; extra fields are rejected here
        for resource in await self.protector.list_resources(owner, schema):
            if resource.matches(schema):
                yield resource
            else:
                log.debug("Skipping %s: schema %s", resource.address, dict(resource.schema))

    async def _has_grant(self, resource: ProtectedResource, grant: GrantSpec) -> bool:
        try:
            grants = await self.protector.list_grants(
                resource.address, grant.authorized_app, grant.authorized_user
            )
        except CollaboratorError as exc:
            log.warning(
                "Grant lookup failed for %s, treating as not granted: %s", resource.address, exc
            )
            return False
        return len(grants) > 0


def _require_owner(owner: str) -> None:
    if not owner or not owner.strip():
        raise ValidationError("Owner identity must not be empty")


def _fields_for_creation(
    schema: Schema, desired_fields: Mapping[str, FieldValue]
) -> dict[str, FieldValue]:
    fields: dict[str, FieldValue] = {**desired_fields, MARKER_FIELD: MARKER_VALUE}
    actual = infer_schema(fields)
    if actual != dict(schema):
        raise ValidationError(
            f"Field values {sorted(actual.items())} "
            f"do not match schema {sorted(dict(schema).items())}"
        )
    return fields
