"""
Encoding and parsing of Solana Pay transfer request URLs.
"""

from decimal import Decimal
from typing import Dict, List, Optional, Tuple
from urllib.parse import quote, unquote

from .exceptions import InvalidDescriptor
from .models import PaymentRequest
from .validation import validate_amount, validate_recipient

SOLANA_PAY_SCHEME = "solana"

_TEXT_FIELDS = ("memo", "label", "message")


def format_amount(amount: Decimal) -> str:
    # "f" never produces exponent notation, e.g. Decimal("1E+2") -> "100".
    return format(amount, "f")


def _query_pairs(request: PaymentRequest) -> List[Tuple[str, str]]:
    pairs = [("amount", format_amount(request.amount))]
    for name in _TEXT_FIELDS:
        value = getattr(request, name)
        if value is None or not value.strip():
            continue
        pairs.append((name, quote(value, safe="")))
    pairs.append(("reference", request.reference))
    return pairs


def encode_url(request: PaymentRequest) -> str:
    query = "&".join(f"{key}={value}" for key, value in _query_pairs(request))
    return f"{SOLANA_PAY_SCHEME}:{request.recipient}?{query}"


def _split_query(query: str) -> Dict[str, str]:
    params: Dict[str, str] = {}
    for pair in query.split("&"):
        if not pair:
            continue
        key, sep, value = pair.partition("=")
        if not sep:
            raise InvalidDescriptor(f"Malformed query parameter: {pair!r}")
        if key in params:
            raise InvalidDescriptor(f"Duplicate query parameter: {key}")
        params[key] = unquote(value)
    return params


def parse_url(url: str) -> PaymentRequest:
    """
    Parse a transfer request URL back into a PaymentRequest.

    Recipient and amount are validated with the same rules used to build
    requests, so a parsed request is always one that could have been built.
    """
    scheme, sep, rest = url.partition(":")
    if not sep or scheme != SOLANA_PAY_SCHEME:
        raise InvalidDescriptor(f"Not a {SOLANA_PAY_SCHEME}: URL: {url!r}")

    recipient, _, query = rest.partition("?")
    params = _split_query(query)

    if "amount" not in params:
        raise InvalidDescriptor("Payment URL has no amount")
    reference: Optional[str] = params.get("reference")
    if not reference:
        raise InvalidDescriptor("Payment URL has no reference")

    return PaymentRequest(
        recipient=validate_recipient(recipient),
        amount=validate_amount(params["amount"]),
        reference=reference,
        memo=params.get("memo"),
        label=params.get("label"),
        message=params.get("message"),
    )
