import argparse
import logging
import signal
import sys
from typing import List, Optional
from urllib.parse import quote

from .config import config_from_env
from .pay import PaymentStatus, SolanaPayError, SolanaRpcClient, ValidationError
from .session import PaymentSession

logger = logging.getLogger("solana_pay_qr")

QR_SERVICE_URL = "https://api.qrserver.com/v1/create-qr-code/"

EXIT_CONFIRMED = 0
EXIT_INVALID = 1
EXIT_NOT_CONFIRMED = 2

_SEVERITY_LEVELS = {
    "info": logging.INFO,
    "success": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def qr_image_url(descriptor: str, size: int = 300) -> str:
    return (
        f"{QR_SERVICE_URL}?size={size}x{size}"
        f"&data={quote(descriptor, safe='')}&format=png&margin=2"
    )


def _log_status(message: str, severity: str) -> None:
    logger.log(_SEVERITY_LEVELS.get(severity, logging.INFO), "%s", message)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="solana-pay-qr",
        description="Issue a Solana Pay request and wait for it to be paid on-chain.",
    )
    parser.add_argument("recipient", help="base58 address receiving the payment")
    parser.add_argument("amount", help="amount in SOL, e.g. 0.5")
    parser.add_argument("--memo")
    parser.add_argument("--label")
    parser.add_argument("--message")
    parser.add_argument("--config", help="JSON configuration file")
    parser.add_argument("--rpc-endpoint", dest="rpc_endpoint")
    parser.add_argument("--interval", dest="poll_interval_sec", type=float)
    parser.add_argument(
        "--timeout",
        dest="payment_timeout_sec",
        type=float,
        help="give up after this many seconds (default: wait forever)",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(level=logging.INFO)
    args = build_parser().parse_args(argv)

    try:
        config = config_from_env(args.config).with_overrides(
            rpc_endpoint=args.rpc_endpoint,
            poll_interval_sec=args.poll_interval_sec,
            payment_timeout_sec=args.payment_timeout_sec,
        )
    except (OSError, ValueError) as exc:
        logger.error("Failed to load configuration: %s", exc)
        return EXIT_INVALID

    ledger = SolanaRpcClient(
        config.rpc_endpoint,
        timeout=config.rpc_timeout_sec,
        max_retries=config.rpc_max_retries,
        backoff_factor=config.rpc_backoff_factor,
    )
    session = PaymentSession(
        ledger,
        config=config,
        on_status=_log_status,
        on_confirmed=lambda signature: print(f"Transaction signature: {signature}"),
    )

    try:
        descriptor = session.submit(
            args.recipient,
            args.amount,
            memo=args.memo,
            label=args.label,
            message=args.message,
        )
    except ValidationError as exc:
        logger.error("%s", exc)
        return EXIT_INVALID

    print(descriptor)
    print(qr_image_url(descriptor))

    def shutdown_handler(signum, frame):  # noqa: D401
        logger.info("Received shutdown signal (%s)", signum)
        session.cancel()

    previous_handlers = {
        signum: signal.signal(signum, shutdown_handler)
        for signum in (signal.SIGTERM, signal.SIGINT)
    }

    try:
        # Short waits keep the main thread responsive to signals.
        while not session.status.is_terminal:
            session.wait(timeout=0.5)
    finally:
        session.close(timeout=config.rpc_timeout_sec)
        for signum, handler in previous_handlers.items():
            if handler is not None:
                signal.signal(signum, handler)

    return EXIT_CONFIRMED if session.status is PaymentStatus.CONFIRMED else EXIT_NOT_CONFIRMED


def run() -> None:
    try:
        sys.exit(main())
    except SolanaPayError as exc:
        logger.error("Solana Pay error: %s", exc)
        sys.exit(EXIT_INVALID)


if __name__ == "__main__":
    run()
