import re
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from .exceptions import InvalidAddress, InvalidAmount

# base58 without the ambiguous 0, O, I and l glyphs.
_ADDRESS_RE = re.compile(r"[1-9A-HJ-NP-Za-km-z]{32,44}")

# One lamport is 1e-9 SOL; u64 lamports cap a transfer below 1e11 SOL.
LAMPORT = Decimal("1e-9")
MAX_AMOUNT_EXPONENT = 10


def is_valid_address(address: Any) -> bool:
    return isinstance(address, str) and _ADDRESS_RE.fullmatch(address) is not None


def validate_recipient(recipient: Any) -> str:
    if isinstance(recipient, str):
        recipient = recipient.strip()
    if not is_valid_address(recipient):
        raise InvalidAddress(f"Invalid recipient address: {recipient!r}")
    return recipient


def validate_amount(amount: Any) -> Decimal:
    if isinstance(amount, bool):
        raise InvalidAmount(f"Invalid amount: {amount!r}")

    if isinstance(amount, Decimal):
        value = amount
    elif isinstance(amount, (int, float, str)):
        try:
            value = Decimal(str(amount).strip())
        except InvalidOperation as exc:
            raise InvalidAmount(f"Amount is not a number: {amount!r}") from exc
    else:
        raise InvalidAmount(f"Unsupported amount type: {type(amount).__name__}")

    if not value.is_finite():
        raise InvalidAmount(f"Amount must be finite: {amount!r}")
    if value <= 0:
        raise InvalidAmount(f"Amount must be greater than zero: {amount!r}")
    if value.adjusted() > MAX_AMOUNT_EXPONENT:
        raise InvalidAmount(f"Amount is too large: {amount!r}")
    if value.quantize(LAMPORT) != value:
        raise InvalidAmount(f"Amount is finer than one lamport: {amount!r}")
    return value


def clean_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None
