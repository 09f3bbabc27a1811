from __future__ import annotations

import asyncio

import pytest

from relaykit.domain.errors import CollaboratorError, ValidationError
from relaykit.domain.reconciliation import ResourceReconciler
from relaykit.domain.types import (
    CHANNEL_PROFILES,
    MARKER_FIELD,
    MARKER_VALUE,
    Channel,
    GrantSpec,
    ReconciliationOutcome,
)
from tests.support.fakes import APP, OWNER, USER, FakeDataProtector, make_resource

PROFILE = CHANNEL_PROFILES[Channel.MAIL]
SCHEMA = PROFILE.schema
GRANT = GrantSpec(authorized_app=APP, authorized_user=USER)


def _reconcile(protector: FakeDataProtector, fields: dict[str, object] | None = None):
    reconciler = ResourceReconciler(protector, resource_name=PROFILE.resource_name)
    return asyncio.run(
        reconciler.reconcile(OWNER, SCHEMA, fields or {"email": "a@b.com"}, GRANT)  # type: ignore
    )


def test_empty_listing_creates_and_grants() -> None:
    protector = FakeDataProtector()

    result = _reconcile(protector)

    assert result.outcome is ReconciliationOutcome.CREATED_AND_GRANTED
    assert len(protector.created) == 1
    created = protector.created[0]
    assert result.resource_address == created.address
    assert dict(created.fields) == {"email": "a@b.com", MARKER_FIELD: MARKER_VALUE}
    assert created.name == "web3mail data"
    assert protector.granted == [(created.address, GRANT)]


def test_second_reconcile_is_already_subscribed() -> None:
    protector = FakeDataProtector()

    first = _reconcile(protector)
    second = _reconcile(protector)

    assert second.outcome is ReconciliationOutcome.ALREADY_SUBSCRIBED
    assert second.resource_address == first.resource_address
    assert len(protector.created) == 1
    assert len(protector.granted) == 1


def test_existing_resource_without_grant_is_reused() -> None:
    protector = FakeDataProtector(
        [make_resource("0xfirst", SCHEMA), make_resource("0xsecond", SCHEMA)]
    )

    result = _reconcile(protector)

    assert result.outcome is ReconciliationOutcome.GRANTED_TO_EXISTING
    assert result.resource_address == "0xfirst"
    assert protector.created == []
    assert [resource for resource, _ in protector.granted] == ["0xfirst"]
    assert protector.lookups == ["0xfirst", "0xsecond"]


def test_first_granted_resource_wins_and_stops_the_scan() -> None:
    protector = FakeDataProtector(
        [
            make_resource("0xfirst", SCHEMA),
            make_resource("0xsecond", SCHEMA),
            make_resource("0xthird", SCHEMA),
        ]
    )
    protector.add_grant("0xsecond")
    protector.add_grant("0xthird")

    result = _reconcile(protector)

    assert result.outcome is ReconciliationOutcome.ALREADY_SUBSCRIBED
    assert result.resource_address == "0xsecond"
    assert protector.lookups == ["0xfirst", "0xsecond"]
    assert protector.granted == []


def test_grant_for_another_app_does_not_count() -> None:
    protector = FakeDataProtector([make_resource("0xfirst", SCHEMA)])
    protector.add_grant("0xfirst", app="0xotherapp")

    result = _reconcile(protector)

    assert result.outcome is ReconciliationOutcome.GRANTED_TO_EXISTING


def test_failed_grant_lookup_is_isolated() -> None:
    protector = FakeDataProtector(
        [make_resource("0xbroken", SCHEMA), make_resource("0xgood", SCHEMA)],
        failing_lookups=["0xbroken"],
    )
    protector.add_grant("0xgood")

    result = _reconcile(protector)

    assert result.outcome is ReconciliationOutcome.ALREADY_SUBSCRIBED
    assert result.resource_address == "0xgood"


def test_failed_lookup_on_only_resource_falls_back_to_granting() -> None:
    protector = FakeDataProtector([make_resource("0xbroken", SCHEMA)], failing_lookups=["0xbroken"])

    result = _reconcile(protector)

    assert result.outcome is ReconciliationOutcome.GRANTED_TO_EXISTING
    assert result.resource_address == "0xbroken"


def test_superset_schema_is_not_a_match() -> None:
    superset = {**SCHEMA, "phone": "string"}
    protector = FakeDataProtector([make_resource("0xsuperset", superset)])
    protector.add_grant("0xsuperset")

    result = _reconcile(protector)

    assert result.outcome is ReconciliationOutcome.CREATED_AND_GRANTED
    assert result.resource_address != "0xsuperset"
    assert protector.lookups == []


def test_resources_of_other_owners_are_ignored() -> None:
    protector = FakeDataProtector([make_resource("0xforeign", SCHEMA, owner="0xsomeoneelse")])

    result = _reconcile(protector)

    assert result.outcome is ReconciliationOutcome.CREATED_AND_GRANTED


def test_grant_failure_is_fatal() -> None:
    protector = FakeDataProtector(fail_grant=True)

    with pytest.raises(CollaboratorError, match="grant rejected"):
        _reconcile(protector)

    assert len(protector.created) == 1


def test_empty_owner_is_rejected() -> None:
    reconciler = ResourceReconciler(FakeDataProtector())

    with pytest.raises(ValidationError):
        asyncio.run(reconciler.reconcile("  ", SCHEMA, {"email": "a@b.com"}, GRANT))


def test_fields_not_matching_schema_are_rejected_before_creation() -> None:
    protector = FakeDataProtector()

    with pytest.raises(ValidationError):
        _reconcile(protector, {"telegram_chatId": "123"})

    assert protector.created == []


def test_revoke_all_revokes_every_grant() -> None:
    protector = FakeDataProtector([make_resource("0xone", SCHEMA), make_resource("0xtwo", SCHEMA)])
    protector.add_grant("0xone")
    protector.add_grant("0xone")
    protector.add_grant("0xtwo")
    reconciler = ResourceReconciler(protector)

    summary = asyncio.run(reconciler.revoke_all(OWNER, SCHEMA, APP, USER))

    assert summary.resources_scanned == 2
    assert summary.grants_found == 3
    assert summary.grants_revoked == 3
    assert summary.grants_failed == 0
    assert len(protector.revoked) == 3


def test_revoke_all_isolates_failures() -> None:
    protector = FakeDataProtector(
        [
            make_resource("0xlookup", SCHEMA),
            make_resource("0xrevoke", SCHEMA),
            make_resource("0xfine", SCHEMA),
        ],
        failing_lookups=["0xlookup"],
        failing_revocations=["0xrevoke"],
    )
    protector.add_grant("0xrevoke")
    protector.add_grant("0xfine")
    reconciler = ResourceReconciler(protector)

    summary = asyncio.run(reconciler.revoke_all(OWNER, SCHEMA, APP, USER))

    assert summary.resources_scanned == 3
    assert summary.resources_failed == 1
    assert summary.grants_found == 2
    assert summary.grants_revoked == 1
    assert summary.grants_failed == 1
    assert [grant.resource for grant in protector.revoked] == ["0xfine"]


def test_revoke_all_without_resources_is_a_no_op() -> None:
    reconciler = ResourceReconciler(FakeDataProtector())

    summary = asyncio.run(reconciler.revoke_all(OWNER, SCHEMA, APP, USER))

    assert summary.resources_scanned == 0
    assert summary.grants_found == 0
