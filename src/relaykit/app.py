"""Application orchestration entry points."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from logging import getLogger
from typing import TYPE_CHECKING

from relaykit.adapters.bridge import (
    BridgeAccountService,
    BridgeDataProtector,
    BridgeMessagingRelay,
    BridgeSession,
)
from relaykit.config import IExecConfig, get_iexec_config
from relaykit.config.dispatch import DEFAULT_MAX_PRICE, DEFAULT_SENDER_NAME
from relaykit.domain.accounts import (
    format_tokens,
    plan_withdrawal,
    to_nano,
    validate_deposit,
)
from relaykit.domain.dispatch import BulkDispatcher
from relaykit.domain.errors import ValidationError
from relaykit.domain.reconciliation import ResourceReconciler
from relaykit.domain.types import (
    CHANNEL_PROFILES,
    UNLIMITED_ACCESS,
    Channel,
    DispatchMode,
    GrantSpec,
)

if TYPE_CHECKING:
    from relaykit.domain.ports import AccountService, DataProtector, MessagingRelay
    from relaykit.domain.types import (
        Balance,
        DispatchSummary,
        DispatchTarget,
        ReconciliationResult,
        RevocationSummary,
    )

log = getLogger(__name__)

ConfirmPrompt = Callable[[str], bool]


@dataclass(slots=True)
class Services:
    """Collaborators for one command run, bound to the wallet identity ``owner``."""

    config: IExecConfig
    owner: str
    protector: DataProtector
    accounts: AccountService
    relay_factory: Callable[[Channel], MessagingRelay]

    def relay(self, channel: Channel) -> MessagingRelay:
        return self.relay_factory(channel)

    def grant_for(
        self, channel: Channel, *, price: int = 0, count: int = UNLIMITED_ACCESS
    ) -> GrantSpec:
        return GrantSpec(
            authorized_app=self.config.app_for(channel),
            authorized_user=self.config.authorized_user,
            price_per_access=price,
            number_of_access=count,
        )


ServicesFactory = Callable[[], AbstractAsyncContextManager[Services]]


@asynccontextmanager
async def open_bridge_services(config: IExecConfig | None = None) -> AsyncIterator[Services]:
    """Connect every port to the SDK bridge for the duration of one command."""

    effective = config or get_iexec_config()
    async with BridgeSession(effective) as session:

        def relay_factory(channel: Channel) -> MessagingRelay:
            return BridgeMessagingRelay(session, channel, effective.app_for(channel))

        yield Services(
            config=effective,
            owner=session.address,
            protector=BridgeDataProtector(session),
            accounts=BridgeAccountService(session),
            relay_factory=relay_factory,
        )


def subscribe(
    *,
    channel: Channel,
    value: str,
    price: Decimal = Decimal(0),
    access_count: int = UNLIMITED_ACCESS,
    services: ServicesFactory | None = None,
) -> ReconciliationResult:
    """Protect ``value`` for ``channel`` and grant the messaging app access to it."""

    profile = CHANNEL_PROFILES[channel]
    fields = profile.fields_for(value)
    if price < 0:
        raise ValidationError(f"Price per access must be >= 0, got {price}")

    async def run() -> ReconciliationResult:
        async with (services or open_bridge_services)() as active:
            grant = active.grant_for(channel, price=to_nano(price), count=access_count)
            log.info(
                "Subscribing %s to %s: price=%s, access=%s",
                active.owner,
                channel,
                price,
                "unlimited" if grant.unlimited else grant.number_of_access,
            )
            reconciler = ResourceReconciler(active.protector, resource_name=profile.resource_name)
            return await reconciler.reconcile(active.owner, profile.schema, fields, grant)

    result = asyncio.run(run())
    log.info("Subscription finished: %s (%s)", result.outcome, result.resource_address)
    return result


def unsubscribe(
    *,
    channel: Channel,
    services: ServicesFactory | None = None,
) -> RevocationSummary:
    """Revoke every grant the messaging app holds on the owner's protected data."""

    profile = CHANNEL_PROFILES[channel]

    async def run() -> RevocationSummary:
        async with (services or open_bridge_services)() as active:
            app = active.config.app_for(channel)
            reconciler = ResourceReconciler(active.protector, resource_name=profile.resource_name)
            return await reconciler.revoke_all(
                active.owner, profile.schema, app, active.config.authorized_user
            )

    return asyncio.run(run())


def build_test_message(sender_name: str, sent_at: datetime) -> str:
    timestamp = sent_at.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return f"{sender_name} says hi! ({timestamp})"


def _utcnow() -> datetime:
    return datetime.now(UTC)


def send_test(
    *,
    channel: Channel,
    max_price: Decimal = DEFAULT_MAX_PRICE,
    mode: DispatchMode = DispatchMode.SEQUENTIAL,
    timeout: float | None = None,
    all_contacts: bool = False,
    sender_name: str = DEFAULT_SENDER_NAME,
    services: ServicesFactory | None = None,
    now_provider: Callable[[], datetime] = _utcnow,
) -> DispatchSummary:
    """Send a test message to the first contact, or to every contact with ``all_contacts``."""

    if max_price < 0:
        raise ValidationError(f"Max price must be >= 0, got {max_price}")
    if timeout is not None and timeout <= 0:
        raise ValidationError(f"Timeout must be positive, got {timeout}")
    content = build_test_message(sender_name, now_provider())
    max_price_nano = to_nano(max_price)

    async def run() -> DispatchSummary:
        async with (services or open_bridge_services)() as active:
            relay = active.relay(channel)
            log.info("Fetching contacts for %s", channel)
            contacts = list(await relay.fetch_contacts(strict=True))
            if not contacts:
                raise ValidationError(
                    "No contacts available. Ensure you have been granted access to "
                    "protected data; run the 'subscribe' command first."
                )
            for index, contact in enumerate(contacts, start=1):
                log.info("Contact %s: %s", index, contact.address)
            targets = contacts if all_contacts else contacts[:1]

            async def send(target: DispatchTarget) -> str:
                return await relay.send(
                    target, content, sender_name=sender_name, max_price=max_price_nano
                )

            dispatcher = BulkDispatcher(mode=mode, timeout=timeout)
            summary = await dispatcher.dispatch(targets, send)
            if dispatcher.pending:
                log.warning(
                    "%s send(s) were still in flight at the deadline and may still be charged",
                    dispatcher.pending,
                )
                # the bridge connection must outlive them
                await dispatcher.drain()
            return summary

    summary = asyncio.run(run())
    for result in summary.results:
        if result.success:
            log.info("Sent to %s: task %s", result.target.address, result.token)
        else:
            log.error("Failed for %s: %s", result.target.address, result.error)
    log.info(
        "Message %r: %s/%s sent, min=%.3fs avg=%.3fs max=%.3fs",
        content,
        summary.success_count,
        summary.total,
        summary.min_elapsed,
        summary.avg_elapsed,
        summary.max_elapsed,
    )
    return summary


def _log_balance(balance: Balance, label: str = "Account balance") -> None:
    log.info(
        "%s: staked=%s nano, locked=%s nano, available=%s nano (%s)",
        label,
        balance.stake,
        balance.locked,
        balance.available,
        format_tokens(balance.available),
    )


def deposit(
    *,
    amount: Decimal,
    confirm: ConfirmPrompt,
    services: ServicesFactory | None = None,
) -> int:
    """Deposit ``amount`` tokens into the account; return the nano amount deposited."""

    amount_nano = validate_deposit(to_nano(amount))

    async def run() -> int:
        async with (services or open_bridge_services)() as active:
            address = await active.accounts.get_address()
            log.info("Account: %s", address)
            _log_balance(await active.accounts.get_balance(address))
            if amount_nano == 0:
                return 0
            if not confirm(f"Are you sure you want to deposit {format_tokens(amount_nano)}?"):
                log.info("Deposit cancelled by user")
                return 0
            await active.accounts.deposit(amount_nano)
            log.info("Deposited %s nano", amount_nano)
            _log_balance(await active.accounts.get_balance(address), "Updated account balance")
            return amount_nano

    return asyncio.run(run())


def withdraw(
    *,
    amount: Decimal | None,
    confirm: ConfirmPrompt,
    services: ServicesFactory | None = None,
) -> int:
    """Withdraw ``amount`` tokens (all available when ``None``); return the nano amount."""

    requested = to_nano(amount) if amount is not None else None

    async def run() -> int:
        async with (services or open_bridge_services)() as active:
            address = await active.accounts.get_address()
            log.info("Account: %s", address)
            balance = await active.accounts.get_balance(address)
            _log_balance(balance)
            if balance.available <= 0:
                log.warning("No available balance to withdraw; all funds are locked in tasks")
                return 0

            amount_nano = plan_withdrawal(balance, requested)
            if not confirm(f"Are you sure you want to withdraw {format_tokens(amount_nano)}?"):
                log.info("Withdrawal cancelled by user")
                return 0
            await active.accounts.withdraw(amount_nano)
            log.info("Withdrew %s nano", amount_nano)
            _log_balance(await active.accounts.get_balance(address), "Updated account balance")
            return amount_nano

    return asyncio.run(run())
