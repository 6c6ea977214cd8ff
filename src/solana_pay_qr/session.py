import logging
import threading
from typing import Any, Callable, List, Optional, Tuple

from .config import SolanaPayConfig
from .pay import (
    LedgerClient,
    PaymentRequest,
    PaymentStatus,
    RequestBuilder,
    VerificationPoller,
)
from .pay.url import format_amount
from .pay.validation import validate_amount

logger = logging.getLogger(__name__)

StatusListener = Callable[[str, str], None]
ConfirmedListener = Callable[[str], None]


class PaymentSession:
    """
    One payment request and the poller that waits for it to land on-chain.

    Status and confirmation events are delivered to the optional on_status
    and on_confirmed callbacks; rendering them is left to the caller.
    """

    def __init__(
        self,
        ledger: LedgerClient,
        config: Optional[SolanaPayConfig] = None,
        on_status: Optional[StatusListener] = None,
        on_confirmed: Optional[ConfirmedListener] = None,
        builder: Optional[RequestBuilder] = None,
    ):
        self._ledger = ledger
        self._config = config or SolanaPayConfig()
        self._builder = builder or RequestBuilder()
        self._status_listeners: List[StatusListener] = []
        self._confirmed_listeners: List[ConfirmedListener] = []
        if on_status is not None:
            self._status_listeners.append(on_status)
        if on_confirmed is not None:
            self._confirmed_listeners.append(on_confirmed)

        self._lock = threading.Lock()
        self._done = threading.Event()
        self._status = PaymentStatus.CREATED
        self._history: List[PaymentStatus] = []
        self._request: Optional[PaymentRequest] = None
        self._descriptor: Optional[str] = None
        self._signature: Optional[str] = None
        self._poller: Optional[VerificationPoller] = None

    @property
    def status(self) -> PaymentStatus:
        return self._status

    @property
    def transaction_signature(self) -> Optional[str]:
        return self._signature

    @property
    def request(self) -> Optional[PaymentRequest]:
        return self._request

    @property
    def descriptor(self) -> Optional[str]:
        return self._descriptor

    @property
    def history(self) -> Tuple[PaymentStatus, ...]:
        return tuple(self._history)

    @property
    def poller(self) -> Optional[VerificationPoller]:
        return self._poller

    def add_status_listener(self, listener: StatusListener) -> None:
        self._status_listeners.append(listener)

    def add_confirmed_listener(self, listener: ConfirmedListener) -> None:
        self._confirmed_listeners.append(listener)

    def submit(
        self,
        recipient: Any,
        amount: Any,
        memo: Optional[str] = None,
        label: Optional[str] = None,
        message: Optional[str] = None,
    ) -> str:
        self._ensure_submittable()

        memo = memo.strip() if memo else None
        amount = validate_amount(amount)
        request = self._builder.build(
            recipient,
            amount,
            memo=memo,
            label=label or self._config.label,
            message=message or memo or f"Payment of {format_amount(amount)} SOL",
        )
        descriptor = self._builder.descriptor(request)

        with self._lock:
            self._ensure_submittable()
            self._request = request
            self._descriptor = descriptor
            self._set_status(PaymentStatus.CREATED)
            poller = VerificationPoller(
                self._ledger,
                interval_sec=self._config.poll_interval_sec,
                signature_limit=self._config.signature_limit,
                commitment=self._config.commitment,
                timeout_sec=self._config.payment_timeout_sec,
            )
            self._poller = poller

        logger.info(
            "Created payment session reference=%s amount=%s recipient=%s",
            request.reference,
            request.amount,
            request.recipient,
        )
        self._emit("QR code generated! Scan with your mobile wallet", "success")

        with self._lock:
            if self._status is not PaymentStatus.CREATED:
                return descriptor
            self._set_status(PaymentStatus.POLLING)
            poller.start(
                request.reference,
                on_confirmed=lambda signature: self._handle_confirmed(poller, signature),
                on_error=lambda exc: self._handle_error(poller, exc),
                on_expired=lambda: self._handle_expired(poller),
            )
        self._emit("Waiting for payment...", "info")
        return descriptor

    def cancel(self) -> None:
        with self._lock:
            if self._status.is_terminal:
                return
            poller = self._poller
            self._set_status(PaymentStatus.CANCELLED)
            self._done.set()
        if poller is not None:
            poller.stop()
        logger.info("Cancelled payment session reference=%s", self._reference())
        self._emit("Payment request cancelled", "info")

    def wait(self, timeout: Optional[float] = None) -> PaymentStatus:
        self._done.wait(timeout)
        return self._status

    def close(self, timeout: Optional[float] = None) -> None:
        self.cancel()
        if self._poller is not None:
            self._poller.join(timeout)

    def __enter__(self) -> "PaymentSession":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # Internal helpers -----------------------------------------------------

    def _ensure_submittable(self) -> None:
        if self._request is not None:
            raise RuntimeError("Payment session already has a request")
        if self._status.is_terminal:
            raise RuntimeError(f"Payment session is already {self._status.value}")

    def _reference(self) -> Optional[str]:
        return self._request.reference if self._request else None

    def _set_status(self, status: PaymentStatus) -> None:
        self._status = status
        self._history.append(status)

    def _is_active(self, poller: VerificationPoller) -> bool:
        return poller is self._poller and self._status is PaymentStatus.POLLING

    def _handle_confirmed(self, poller: VerificationPoller, signature: str) -> None:
        with self._lock:
            if not self._is_active(poller):
                logger.debug("Ignoring confirmation from stale poller signature=%s", signature)
                return
            self._signature = signature
            self._set_status(PaymentStatus.CONFIRMED)
            self._done.set()

        logger.info(
            "Payment confirmed signature=%s reference=%s", signature, self._reference()
        )
        self._emit("Payment confirmed!", "success")
        for listener in list(self._confirmed_listeners):
            self._call_listener(listener, signature)

    def _handle_error(self, poller: VerificationPoller, exc: Exception) -> None:
        with self._lock:
            if not self._is_active(poller):
                return
        self._emit("No valid transaction found yet, retrying...", "warning")

    def _handle_expired(self, poller: VerificationPoller) -> None:
        with self._lock:
            if not self._is_active(poller):
                return
            self._set_status(PaymentStatus.EXPIRED)
            self._done.set()
        self._emit("Payment not confirmed in time.", "error")

    def _emit(self, message: str, severity: str) -> None:
        for listener in list(self._status_listeners):
            self._call_listener(listener, message, severity)

    @staticmethod
    def _call_listener(listener: Callable, *args) -> None:
        try:
            listener(*args)
        except Exception:  # pylint: disable=broad-except
            logger.exception("Payment session listener raised")
