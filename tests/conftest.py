from __future__ import annotations

import pytest

_CONFIG_ENV_NAMES = (
    "PRIVATE_KEY",
    "AUTHORIZED_USER",
    "AUTHORIZED_APP_TELEGRAM",
    "AUTHORIZED_APP_MAIL",
    "IEXEC_CHAIN_ID",
    "RELAYKIT_BRIDGE_URL",
    "RELAYKIT_MAX_PRICE",
    "RELAYKIT_SENDER_NAME",
    "RELAYKIT_SEND_TIMEOUT",
)


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep a developer's real wallet configuration out of the test run."""

    for name in _CONFIG_ENV_NAMES:
        monkeypatch.delenv(name, raising=False)
