"""Request signing with the configured wallet key."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from eth_account import Account
from eth_account.messages import encode_defunct

from relaykit.config.errors import ConfigurationError
from relaykit.config.iexec import DEFAULT_CHAIN_ID

if TYPE_CHECKING:
    from collections.abc import Callable

    from eth_account.signers.local import LocalAccount


def load_account(private_key: str) -> LocalAccount:
    """Build a local account from a hex private key, with or without ``0x``."""

    key = private_key if private_key.startswith("0x") else f"0x{private_key}"
    try:
        return Account.from_key(key)
    except (ValueError, TypeError) as exc:
        raise ConfigurationError("PRIVATE_KEY is not a valid private key") from exc


@dataclass(slots=True)
class RequestSigner:
    """Produce EIP-191 authentication headers for bridge requests.

    The chain id is part of the signed message, so a request signed for one
    chain is rejected by a bridge serving another.
    """

    account: LocalAccount
    chain_id: int = DEFAULT_CHAIN_ID
    now: Callable[[], float] = field(default=time.time)

    @classmethod
    def from_private_key(
        cls, private_key: str, *, chain_id: int = DEFAULT_CHAIN_ID
    ) -> RequestSigner:
        return cls(account=load_account(private_key), chain_id=chain_id)

    @property
    def address(self) -> str:
        return self.account.address

    def headers(self, method: str, path: str) -> dict[str, str]:
        timestamp = str(int(self.now()))
        message = encode_defunct(text=f"{method.upper()} {path} {timestamp} {self.chain_id}")
        signed = self.account.sign_message(message)
        return {
            "X-Relay-Address": self.account.address,
            "X-Relay-Timestamp": timestamp,
            "X-Relay-Chain-Id": str(self.chain_id),
            "X-Relay-Signature": "0x" + signed.signature.hex().removeprefix("0x"),
        }
