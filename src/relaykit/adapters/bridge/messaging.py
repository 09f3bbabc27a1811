"""Messaging relay port backed by the bridge."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from relaykit.domain.errors import Collaborator
from relaykit.domain.types import Channel, DispatchTarget

from .schema import ContactsResponse, SendResponse

if TYPE_CHECKING:
    from .client import BridgeSession

_SERVICE = Collaborator.MESSAGING


@dataclass(slots=True)
class BridgeMessagingRelay:
    """Relay for one channel, restricted to its whitelisted application."""

    session: BridgeSession
    channel: Channel
    app: str

    async def fetch_contacts(self, *, strict: bool = True) -> list[DispatchTarget]:
        response = await self.session.get(
            f"/v1/{self.channel}/contacts",
            ContactsResponse,
            collaborator=_SERVICE,
            params={"app": self.app, "isUserStrict": "true" if strict else "false"},
        )
        return [
            DispatchTarget(address=item.address, owner=item.owner) for item in response.contacts
        ]

    async def send(
        self,
        target: DispatchTarget,
        content: str,
        *,
        sender_name: str,
        max_price: int,
    ) -> str:
        response = await self.session.post(
            f"/v1/{self.channel}/send",
            SendResponse,
            collaborator=_SERVICE,
            body={
                "app": self.app,
                "protectedData": target.address,
                "content": content,
                "senderName": sender_name,
                "workerpoolMaxPrice": str(max_price),
            },
        )
        return response.task_id
