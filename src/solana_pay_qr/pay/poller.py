import logging
import threading
import time
from enum import Enum
from typing import Callable, Optional

from .exceptions import PaymentTimeoutError, TransientLedgerError
from .ledger import LedgerClient

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SEC = 5.0
DEFAULT_SIGNATURE_LIMIT = 10
DEFAULT_COMMITMENT = "confirmed"


class PollerState(Enum):
    IDLE = "idle"
    POLLING = "polling"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class VerificationPoller:
    """
    Polls the ledger for a transaction referencing a payment reference.

    A daemon worker calls tick() every interval_sec until the payment is
    confirmed, the poller is stopped, or the optional deadline passes. Only
    the most recent signature is inspected on each tick: a failed or not yet
    resolvable transaction means "keep waiting", never "search older ones".

    stop() does not interrupt a ledger call already in flight. Each tick
    remembers the epoch it started in and drops its results if stop() has
    bumped the epoch in the meantime.
    """

    def __init__(
        self,
        ledger: LedgerClient,
        interval_sec: float = DEFAULT_POLL_INTERVAL_SEC,
        signature_limit: int = DEFAULT_SIGNATURE_LIMIT,
        commitment: str = DEFAULT_COMMITMENT,
        timeout_sec: Optional[float] = None,
    ):
        if interval_sec <= 0:
            raise ValueError("interval_sec must be greater than zero")
        self._ledger = ledger
        self._interval_sec = interval_sec
        self._signature_limit = signature_limit
        self._commitment = commitment
        self._timeout_sec = timeout_sec

        self._lock = threading.Lock()
        self._tick_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._state = PollerState.IDLE
        self._epoch = 0
        self._deadline: Optional[float] = None
        self._reference: Optional[str] = None
        self._signature: Optional[str] = None
        self._on_confirmed: Optional[Callable[[str], None]] = None
        self._on_error: Optional[Callable[[Exception], None]] = None
        self._on_expired: Optional[Callable[[], None]] = None

    @property
    def state(self) -> PollerState:
        return self._state

    @property
    def reference(self) -> Optional[str]:
        return self._reference

    @property
    def signature(self) -> Optional[str]:
        return self._signature

    @property
    def interval_sec(self) -> float:
        return self._interval_sec

    def start(
        self,
        reference: str,
        on_confirmed: Callable[[str], None],
        on_error: Optional[Callable[[Exception], None]] = None,
        on_expired: Optional[Callable[[], None]] = None,
    ) -> None:
        with self._lock:
            if self._state is not PollerState.IDLE:
                raise RuntimeError(f"Poller cannot start from state {self._state.value}")

            self._reference = reference
            self._on_confirmed = on_confirmed
            self._on_error = on_error
            self._on_expired = on_expired
            if self._timeout_sec is not None:
                self._deadline = time.monotonic() + self._timeout_sec
            self._state = PollerState.POLLING
            self._epoch += 1

            self._thread = threading.Thread(
                target=self._run,
                name=f"solana-pay-poller-{reference[:8]}",
                daemon=True,
            )
            self._thread.start()

        logger.info(
            "Started payment verification reference=%s interval=%ss",
            reference,
            self._interval_sec,
        )

    def stop(self) -> None:
        with self._lock:
            if self._state not in (PollerState.IDLE, PollerState.POLLING):
                return
            self._state = PollerState.CANCELLED
            self._epoch += 1
            self._stop_event.set()

        logger.info("Stopped payment verification reference=%s", self._reference)

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the worker thread to exit. Returns False on timeout."""
        thread = self._thread
        if thread is None or thread is threading.current_thread():
            return True
        thread.join(timeout)
        return not thread.is_alive()

    def tick(self) -> bool:
        """
        Run one verification check. Returns True while polling should go on.
        """
        with self._tick_lock:
            epoch = self._epoch
            if not self._is_current(epoch):
                return False

            if self._deadline is not None and time.monotonic() >= self._deadline:
                self._expire(epoch)
                return False

            reference = self._reference
            try:
                signatures = self._ledger.get_signatures_for_address(
                    reference, self._signature_limit
                )
            except TransientLedgerError as exc:
                logger.warning(
                    "Signature lookup failed reference=%s, retrying next tick: %s",
                    reference,
                    exc,
                )
                self._report_error(epoch, exc)
                return self._is_current(epoch)

            if not self._is_current(epoch):
                return False

            if not signatures:
                logger.debug("No signatures yet for reference=%s", reference)
                return True

            signature = signatures[0].signature
            logger.debug(
                "Inspecting signature=%s reference=%s", signature, reference
            )
            try:
                transaction = self._ledger.get_transaction(signature, self._commitment)
            except TransientLedgerError as exc:
                logger.warning(
                    "Transaction lookup failed signature=%s reference=%s, retrying next tick: %s",
                    signature,
                    reference,
                    exc,
                )
                self._report_error(epoch, exc)
                return self._is_current(epoch)

            if not self._is_current(epoch):
                return False

            if transaction is None:
                logger.debug(
                    "Transaction %s has no result yet for reference=%s", signature, reference
                )
                return True

            if not transaction.succeeded:
                logger.info(
                    "Transaction %s failed during execution for reference=%s, still waiting",
                    signature,
                    reference,
                )
                return True

            return not self._confirm(epoch, signature)

    # Internal helpers -----------------------------------------------------

    def _run(self) -> None:
        while not self._stop_event.wait(self._interval_sec):
            try:
                if not self.tick():
                    break
            except Exception:  # pylint: disable=broad-except
                logger.exception(
                    "Unexpected error verifying reference=%s, retrying next tick",
                    self._reference,
                )

    def _is_current(self, epoch: int) -> bool:
        return self._state is PollerState.POLLING and epoch == self._epoch

    def _finish(
        self, epoch: int, state: PollerState, signature: Optional[str] = None
    ) -> bool:
        with self._lock:
            if not self._is_current(epoch):
                return False
            self._signature = signature
            self._state = state
            self._epoch += 1
            self._stop_event.set()
            return True

    def _confirm(self, epoch: int, signature: str) -> bool:
        if not self._finish(epoch, PollerState.CONFIRMED, signature):
            return False

        logger.info(
            "Verified payment signature=%s reference=%s", signature, self._reference
        )
        self._invoke(self._on_confirmed, signature)
        return True

    def _expire(self, epoch: int) -> None:
        if not self._finish(epoch, PollerState.EXPIRED):
            return
        logger.warning(
            "Payment window of %ss expired for reference=%s",
            self._timeout_sec,
            self._reference,
        )
        if self._on_expired is not None:
            self._invoke(self._on_expired)
        else:
            self._invoke(
                self._on_error,
                PaymentTimeoutError(f"Payment window expired for reference {self._reference}"),
            )

    def _report_error(self, epoch: int, exc: Exception) -> None:
        if self._is_current(epoch):
            self._invoke(self._on_error, exc)

    @staticmethod
    def _invoke(callback: Optional[Callable], *args) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception:  # pylint: disable=broad-except
            logger.exception("Payment verification callback raised")
