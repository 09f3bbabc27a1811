"""In-memory implementations of the collaborator ports for testing."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from relaykit.app import Services
from relaykit.config.iexec import IExecConfig
from relaykit.domain.errors import Collaborator, CollaboratorError
from relaykit.domain.types import (
    AccessGrant,
    Balance,
    DispatchTarget,
    ProtectedResource,
    infer_schema,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterable, Mapping

    from relaykit.app import ServicesFactory
    from relaykit.domain.types import Channel, FieldValue, GrantSpec, Schema

OWNER = "0x00000000000000000000000000000000000000aa"
APP = "0x53AFc09a647e7D5Fa9BDC784Eb3623385C45eF89"
USER = "0x346BF25831698B27046F59210505F70F5391A197"
TEST_PRIVATE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_resource(
    address: str,
    schema: Schema,
    *,
    owner: str = OWNER,
) -> ProtectedResource:
    return ProtectedResource(address=address, owner=owner, schema=schema)


class FakeDataProtector:
    """Data-protection service with the listing semantics of the real one.

    Listing returns every resource carrying at least the requested fields, so
    resources with extra fields come back too.
    """

    def __init__(
        self,
        resources: Iterable[ProtectedResource] = (),
        *,
        owner: str = OWNER,
        failing_lookups: Iterable[str] = (),
        failing_revocations: Iterable[str] = (),
        fail_grant: bool = False,
    ) -> None:
        self.owner = owner
        self.resources: list[ProtectedResource] = list(resources)
        self.grants: dict[tuple[str, str, str], list[AccessGrant]] = {}
        self.failing_lookups = set(failing_lookups)
        self.failing_revocations = set(failing_revocations)
        self.fail_grant = fail_grant
        self.created: list[ProtectedResource] = []
        self.granted: list[tuple[str, GrantSpec]] = []
        self.lookups: list[str] = []
        self.revoked: list[AccessGrant] = []

    def add_grant(self, resource: str, app: str = APP, user: str = USER) -> AccessGrant:
        grant = AccessGrant(resource=resource, authorized_app=app, authorized_user=user)
        self.grants.setdefault((resource, app, user), []).append(grant)
        return grant

    async def list_resources(self, owner: str, schema: Schema) -> list[ProtectedResource]:
        required = set(schema.items())
        return [
            resource
            for resource in self.resources
            if resource.owner == owner and required <= set(resource.schema.items())
        ]

    async def create_resource(
        self, name: str, fields: Mapping[str, FieldValue]
    ) -> ProtectedResource:
        resource = ProtectedResource(
            address=f"0xdata{len(self.created) + 1}",
            owner=self.owner,
            name=name,
            schema=infer_schema(fields),
            fields=fields,
        )
        self.created.append(resource)
        self.resources.append(resource)
        return resource

    async def grant_access(self, resource: str, grant: GrantSpec) -> AccessGrant:
        if self.fail_grant:
            raise CollaboratorError("grant rejected", collaborator=Collaborator.DATA_PROTECTOR)
        self.granted.append((resource, grant))
        access = AccessGrant(
            resource=resource,
            authorized_app=grant.authorized_app,
            authorized_user=grant.authorized_user,
            price_per_access=grant.price_per_access,
            remaining_access=grant.number_of_access,
        )
        key = (resource, grant.authorized_app, grant.authorized_user)
        self.grants.setdefault(key, []).append(access)
        return access

    async def list_grants(self, resource: str, app: str, user: str) -> list[AccessGrant]:
        self.lookups.append(resource)
        if resource in self.failing_lookups:
            raise CollaboratorError("network error", collaborator=Collaborator.DATA_PROTECTOR)
        return list(self.grants.get((resource, app, user), []))

    async def revoke_grant(self, grant: AccessGrant) -> None:
        if grant.resource in self.failing_revocations:
            raise CollaboratorError("revoke failed", collaborator=Collaborator.DATA_PROTECTOR)
        key = (grant.resource, grant.authorized_app, grant.authorized_user)
        self.grants[key].remove(grant)
        self.revoked.append(grant)

    async def revoke_all_grants(self, resource: str, app: str, user: str) -> int:
        existing = self.grants.pop((resource, app, user), [])
        if not existing:
            raise CollaboratorError("no grant to revoke", collaborator=Collaborator.DATA_PROTECTOR)
        self.revoked.extend(existing)
        return len(existing)


class FakeMessagingRelay:
    """Relay whose per-address outcome is either a task id or an exception.

    ``delays`` holds per-address send latencies in seconds. A send finishing
    after the services context closed fails the way a closed connection would.
    """

    def __init__(
        self,
        contacts: Iterable[str] = (),
        *,
        outcomes: Mapping[str, str | Exception] | None = None,
        delays: Mapping[str, float] | None = None,
    ) -> None:
        self.contacts = [DispatchTarget(address=address) for address in contacts]
        self.outcomes = dict(outcomes or {})
        self.delays = dict(delays or {})
        self.closed = False
        self.sent: list[tuple[str, str, str, int]] = []
        self.strict_flags: list[bool] = []

    async def fetch_contacts(self, *, strict: bool = True) -> list[DispatchTarget]:
        self.strict_flags.append(strict)
        return list(self.contacts)

    async def send(
        self,
        target: DispatchTarget,
        content: str,
        *,
        sender_name: str,
        max_price: int,
    ) -> str:
        await asyncio.sleep(self.delays.get(target.address, 0))
        if self.closed:
            raise RuntimeError("relay connection closed")
        self.sent.append((target.address, content, sender_name, max_price))
        outcome = self.outcomes.get(target.address, f"task-{target.address}")
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeAccountService:
    def __init__(self, *, stake: int = 0, locked: int = 0, address: str = OWNER) -> None:
        self.address = address
        self.balance = Balance(stake=stake, locked=locked)
        self.deposits: list[int] = []
        self.withdrawals: list[int] = []
        self.balance_checks = 0

    async def get_address(self) -> str:
        return self.address

    async def get_balance(self, address: str) -> Balance:
        assert address == self.address
        self.balance_checks += 1
        return self.balance

    async def deposit(self, amount: int) -> None:
        self.deposits.append(amount)
        self.balance = Balance(stake=self.balance.stake + amount, locked=self.balance.locked)

    async def withdraw(self, amount: int) -> None:
        self.withdrawals.append(amount)
        self.balance = Balance(stake=self.balance.stake - amount, locked=self.balance.locked)


def make_config(**overrides: object) -> IExecConfig:
    values: dict[str, object] = {
        "private_key": TEST_PRIVATE_KEY,
        "authorized_user": USER,
        "telegram_app": APP,
    }
    values.update(overrides)
    return IExecConfig(**values)  # type: ignore[arg-type]


def make_services_factory(
    *,
    protector: FakeDataProtector | None = None,
    accounts: FakeAccountService | None = None,
    relay: FakeMessagingRelay | None = None,
    config: IExecConfig | None = None,
) -> ServicesFactory:
    effective_config = config or make_config()
    active_protector = protector or FakeDataProtector()
    active_accounts = accounts or FakeAccountService()
    active_relay = relay or FakeMessagingRelay()

    def relay_factory(channel: Channel) -> FakeMessagingRelay:
        effective_config.app_for(channel)
        return active_relay

    @asynccontextmanager
    async def factory() -> AsyncIterator[Services]:
        active_relay.closed = False
        try:
            yield Services(
                config=effective_config,
                owner=OWNER,
                protector=active_protector,
                accounts=active_accounts,
                relay_factory=relay_factory,
            )
        finally:
            active_relay.closed = True

    return factory
