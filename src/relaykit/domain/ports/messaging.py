"""Port for the messaging relay service."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from relaykit.domain.types import DispatchTarget

if TYPE_CHECKING:
    from collections.abc import Sequence

SendOperation = Callable[[DispatchTarget], Awaitable[str]]
"""Per-target send returning an opaque result token such as a task id."""


@runtime_checkable
class MessagingRelay(Protocol):
    """Relays messages to the owners of protected data."""

    async def fetch_contacts(self, *, strict: bool = True) -> Sequence[DispatchTarget]: ...

    async def send(
        self,
        target: DispatchTarget,
        content: str,
        *,
        sender_name: str,
        max_price: int,
    ) -> str: ...
