from __future__ import annotations

import argparse
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from relaykit.app import deposit, send_test, subscribe, unsubscribe, withdraw
from relaykit.config import ConfigurationError, configure_logging, get_dispatch_config
from relaykit.config.dispatch import DEFAULT_DEPOSIT_AMOUNT
from relaykit.domain.accounts import parse_amount
from relaykit.domain.errors import ValidationError
from relaykit.domain.types import CHANNEL_PROFILES, UNLIMITED_ACCESS, Channel, DispatchMode

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from decimal import Decimal
    from types import FrameType

log = logging.getLogger(__name__)

_TELEGRAM_HELP = (
    "No chat ID provided. To get your Telegram chat ID:",
    "1. Open Telegram and start a conversation with @IExecWeb3TelegramBot",
    "   https://t.me/IExecWeb3TelegramBot",
    "2. Send any message to the bot",
    "3. The bot will reply with your unique chat ID",
    "4. Copy that chat ID and paste it below",
)


def _add_channel_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--channel",
        type=Channel,
        choices=list(Channel),
        default=Channel.TELEGRAM,
        help="Messaging channel (default: %(default)s)",
    )


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    defaults = get_dispatch_config()
    parser = argparse.ArgumentParser(
        prog="relaykit",
        description="Protect contact data, grant relay access and send test messages",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    sub = subparsers.add_parser(
        "subscribe", help="Protect a chat ID or e-mail and grant the messaging app access"
    )
    _add_channel_option(sub)
    sub.add_argument("-c", "--chat-id", type=str, help="Telegram chat ID to protect")
    sub.add_argument("-e", "--email", type=str, help="E-mail address to protect")
    sub.add_argument(
        "-p",
        "--price",
        type=str,
        default="0",
        help="Price per access in tokens (default: %(default)s)",
    )
    sub.add_argument(
        "-n",
        "--access-count",
        type=int,
        default=UNLIMITED_ACCESS,
        help="Number of access (default: unlimited)",
    )

    unsub = subparsers.add_parser(
        "unsubscribe", help="Revoke every grant the messaging app holds on your data"
    )
    _add_channel_option(unsub)

    send = subparsers.add_parser("send-test", help="Send a test message to your contacts")
    _add_channel_option(send)
    send.add_argument(
        "-p",
        "--max-price",
        type=str,
        default=str(defaults.max_price),
        help="Maximum price per task in tokens (default: %(default)s)",
    )
    send.add_argument(
        "--mode",
        type=DispatchMode,
        choices=list(DispatchMode),
        default=DispatchMode.SEQUENTIAL,
        help="Send one at a time or all at once (default: %(default)s)",
    )
    send.add_argument(
        "--timeout",
        type=float,
        default=defaults.timeout_seconds,
        help="Overall deadline in seconds for concurrent sends",
    )
    send.add_argument(
        "--all",
        dest="all_contacts",
        action="store_true",
        help="Send to every contact instead of the first one",
    )
    send.add_argument(
        "--sender-name",
        type=str,
        default=defaults.sender_name,
        help="Sender name shown to the recipient (default: %(default)s)",
    )

    dep = subparsers.add_parser("deposit", help="Check the balance and deposit tokens")
    dep.add_argument(
        "-a",
        "--amount",
        type=str,
        default=str(DEFAULT_DEPOSIT_AMOUNT),
        help="Amount of tokens to deposit (default: %(default)s)",
    )
    dep.add_argument("-y", "--yes", action="store_true", help="Skip the confirmation prompt")

    wd = subparsers.add_parser("withdraw", help="Check the balance and withdraw tokens")
    wd.add_argument(
        "-a",
        "--amount",
        type=str,
        help="Amount of tokens to withdraw (default: all available)",
    )
    wd.add_argument("-y", "--yes", action="store_true", help="Skip the confirmation prompt")

    return parser.parse_args(list(argv))


def _prompt(message: str) -> str:
    try:
        return input(f"{message} ")
    except EOFError as exc:
        raise ValidationError("No input available for prompt") from exc


def _ask_confirmation(message: str) -> bool:
    answer = _prompt(f"{message} [y/N]")
    return answer.strip().lower() in {"y", "yes"}


def _always_confirm(_message: str) -> bool:
    return True


def _resolve_contact_value(
    args: argparse.Namespace,
    *,
    prompt: Callable[[str], str] = _prompt,
) -> str:
    channel: Channel = args.channel
    value = args.chat_id if channel is Channel.TELEGRAM else args.email
    if value is not None:
        return value
    if channel is Channel.TELEGRAM:
        for line in _TELEGRAM_HELP:
            log.info(line)
    label = CHANNEL_PROFILES[channel].field_name
    answer = prompt(f"Enter {label}:")
    if not answer.strip():
        raise ValidationError(f"Please enter a valid {label}")
    return answer


def _run_command(args: argparse.Namespace) -> int:
    """Execute the selected command and return the process exit status."""

    confirm = _always_confirm if getattr(args, "yes", False) else _ask_confirmation

    if args.command == "subscribe":
        value = _resolve_contact_value(args)
        subscribe(
            channel=args.channel,
            value=value,
            price=parse_amount(args.price),
            access_count=args.access_count,
        )
        return 0

    if args.command == "unsubscribe":
        summary = unsubscribe(channel=args.channel)
        failures = summary.resources_failed + summary.grants_failed
        return 1 if failures and summary.grants_revoked == 0 else 0

    if args.command == "send-test":
        result = send_test(
            channel=args.channel,
            max_price=parse_amount(args.max_price),
            mode=args.mode,
            timeout=args.timeout,
            all_contacts=args.all_contacts,
            sender_name=args.sender_name,
        )
        return 0 if result.success_count > 0 else 1

    if args.command == "deposit":
        deposit(amount=parse_amount(args.amount), confirm=confirm)
        return 0

    if args.command == "withdraw":
        amount: Decimal | None = parse_amount(args.amount) if args.amount is not None else None
        withdraw(amount=amount, confirm=confirm)
        return 0

    raise ValidationError(f"Unsupported command: {args.command}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
    except ConfigurationError:
        log.exception("Invalid configuration")
        sys.exit(1)

    try:
        status = _run_command(parsed_args)
    except Exception:
        log.exception("Fatal error during %s", parsed_args.command)
        sys.exit(1)

    if status != 0:
        log.error("%s finished without a single successful operation", parsed_args.command)
        sys.exit(status)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    """Console-script entry point."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
