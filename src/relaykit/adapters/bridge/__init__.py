"""Public interface for the bridge adapter."""

from __future__ import annotations

from .account import BridgeAccountService
from .client import BridgeSession
from .dataprotector import BridgeDataProtector
from .messaging import BridgeMessagingRelay
from .signing import RequestSigner, load_account

__all__ = [
    "BridgeAccountService",
    "BridgeDataProtector",
    "BridgeMessagingRelay",
    "BridgeSession",
    "RequestSigner",
    "load_account",
]
