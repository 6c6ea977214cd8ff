import logging
from typing import Any, Callable, Optional

from .models import PaymentRequest
from .reference import new_reference
from .url import encode_url
from .validation import clean_text, validate_amount, validate_recipient

logger = logging.getLogger(__name__)


class RequestBuilder:
    """
    Builds immutable payment requests bound to a fresh reference.

    Recipient and amount are validated before a reference is generated, so a
    rejected request never consumes randomness or touches the ledger.
    """

    def __init__(self, reference_factory: Callable[[], str] = new_reference) -> None:
        self._reference_factory = reference_factory

    def build(
        self,
        recipient: Any,
        amount: Any,
        memo: Optional[str] = None,
        label: Optional[str] = None,
        message: Optional[str] = None,
    ) -> PaymentRequest:
        request = PaymentRequest(
            recipient=validate_recipient(recipient),
            amount=validate_amount(amount),
            reference=self._reference_factory(),
            memo=clean_text(memo),
            label=clean_text(label),
            message=clean_text(message),
        )
        logger.debug(
            "Built payment request recipient=%s amount=%s reference=%s",
            request.recipient,
            request.amount,
            request.reference,
        )
        return request

    @staticmethod
    def descriptor(request: PaymentRequest) -> str:
        return encode_url(request)
