"""Port for the token account service."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from relaykit.domain.types import Balance


@runtime_checkable
class AccountService(Protocol):
    """Balance and stake management; all amounts are in nano units."""

    async def get_address(self) -> str: ...

    async def get_balance(self, address: str) -> Balance: ...

    async def deposit(self, amount: int) -> None: ...

    async def withdraw(self, amount: int) -> None: ...
