"""Wallet, network and bridge configuration values."""

from __future__ import annotations

from dataclasses import dataclass, field

from .env import optional_env_var, require_env_vars
from .errors import ConfigurationError
from .http_resilience import RateLimit, ResilienceConfig

DEFAULT_AUTHORIZED_USER = "0x346BF25831698B27046F59210505F70F5391A197"
DEFAULT_TELEGRAM_APP = "0x53AFc09a647e7D5Fa9BDC784Eb3623385C45eF89"
DEFAULT_CHAIN_ID = 42161  # Arbitrum mainnet
DEFAULT_BRIDGE_URL = "http://127.0.0.1:8787"
BRIDGE_TIMEOUT_SECONDS = 120.0


def _default_resilience(base_url: str = DEFAULT_BRIDGE_URL) -> ResilienceConfig:
    return ResilienceConfig(
        name="bridge",
        base_url=base_url,
        timeout_seconds=BRIDGE_TIMEOUT_SECONDS,
        ratelimit=RateLimit(max_calls=5, per_seconds=1.0),
    )


@dataclass(frozen=True, slots=True)
class IExecConfig:
    """Credentials and fixed addresses used by every command."""

    private_key: str = field(repr=False)
    authorized_user: str = DEFAULT_AUTHORIZED_USER
    telegram_app: str = DEFAULT_TELEGRAM_APP
    mail_app: str = ""
    chain_id: int = DEFAULT_CHAIN_ID
    resilience: ResilienceConfig = field(default_factory=_default_resilience)

    def app_for(self, channel: str) -> str:
        """Return the whitelisted messaging application for ``channel``."""

        address = {"telegram": self.telegram_app, "mail": self.mail_app}.get(channel)
        if address is None:
            raise ConfigurationError(f"Unknown messaging channel: {channel}")
        if not address:
            env_name = f"AUTHORIZED_APP_{channel.upper()}"
            raise ConfigurationError(
                f"No application address configured for {channel} ({env_name})"
            )
        return address


def get_iexec_config(*, resilience: ResilienceConfig | None = None) -> IExecConfig:
    values = require_env_vars(("PRIVATE_KEY",))
    raw_chain_id = optional_env_var("IEXEC_CHAIN_ID", str(DEFAULT_CHAIN_ID))
    try:
        chain_id = int(raw_chain_id)
    except ValueError as exc:
        msg = f"IEXEC_CHAIN_ID must be an integer, got {raw_chain_id!r}"
        raise ConfigurationError(msg) from exc

    return IExecConfig(
        private_key=values["PRIVATE_KEY"],
        authorized_user=optional_env_var("AUTHORIZED_USER", DEFAULT_AUTHORIZED_USER),
        telegram_app=optional_env_var("AUTHORIZED_APP_TELEGRAM", DEFAULT_TELEGRAM_APP),
        mail_app=optional_env_var("AUTHORIZED_APP_MAIL", ""),
        chain_id=chain_id,
        resilience=resilience
        or _default_resilience(optional_env_var("RELAYKIT_BRIDGE_URL", DEFAULT_BRIDGE_URL)),
    )
