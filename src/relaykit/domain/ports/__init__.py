"""Domain port definitions for adapters."""

from __future__ import annotations

from .accounts import AccountService
from .messaging import MessagingRelay, SendOperation
from .protection import DataProtector

__all__ = [
    "AccountService",
    "DataProtector",
    "MessagingRelay",
    "SendOperation",
]
