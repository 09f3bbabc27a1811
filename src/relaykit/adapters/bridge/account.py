"""Account port backed by the bridge."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from relaykit.domain.errors import Collaborator
from relaykit.domain.types import Balance

from .schema import BalanceResponse, TransactionResponse

if TYPE_CHECKING:
    from .client import BridgeSession

log = getLogger(__name__)

_SERVICE = Collaborator.ACCOUNT


@dataclass(slots=True)
class BridgeAccountService:
    session: BridgeSession

    async def get_address(self) -> str:
        return self.session.address

    async def get_balance(self, address: str) -> Balance:
        response = await self.session.get(
            f"/v1/account/{address}/balance", BalanceResponse, collaborator=_SERVICE
        )
        return Balance(stake=response.stake, locked=response.locked)

    async def deposit(self, amount: int) -> None:
        response = await self.session.post(
            "/v1/account/deposit",
            TransactionResponse,
            collaborator=_SERVICE,
            body={"amount": str(amount)},
        )
        log.debug("Deposit transaction %s", response.tx_hash)

    async def withdraw(self, amount: int) -> None:
        response = await self.session.post(
            "/v1/account/withdraw",
            TransactionResponse,
            collaborator=_SERVICE,
            body={"amount": str(amount)},
        )
        log.debug("Withdraw transaction %s", response.tx_hash)
