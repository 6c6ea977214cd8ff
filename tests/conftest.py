"""Pytest configuration and shared fixtures."""

import threading
from typing import Any, Dict, List, Optional

import pytest

from solana_pay_qr.pay import SignatureInfo, TransactionStatus

RECIPIENT = "9xQeWvG816bUx9EPjHmaT23yvVM2ZWbrrpZb9PusVFin"
SHORT_RECIPIENT = "11111111111111111111111111111111"


def _next(responses: List[Any]) -> Any:
    # The last scripted response repeats forever.
    return responses.pop(0) if len(responses) > 1 else responses[0]


class StubLedger:
    """
    Scripted ledger client that records every call.

    signature_responses is consumed one entry per call; an entry is either a
    list of signature strings or an exception instance to raise. transactions
    maps a signature to a TransactionStatus, None, an exception, or a list of
    those consumed per call.
    """

    def __init__(
        self,
        signature_responses: Optional[List[Any]] = None,
        transactions: Optional[Dict[str, Any]] = None,
    ):
        self.signature_responses = list(signature_responses or [[]])
        self.transactions = {
            key: list(value) if isinstance(value, list) else [value]
            for key, value in (transactions or {}).items()
        }
        self.calls: List[tuple] = []
        self._lock = threading.Lock()

    def get_signatures_for_address(self, address: str, limit: int) -> List[SignatureInfo]:
        with self._lock:
            self.calls.append(("signatures", address, limit))
            response = _next(self.signature_responses)
        if isinstance(response, Exception):
            raise response
        return [SignatureInfo(signature=signature) for signature in response]

    def get_transaction(self, signature: str, commitment: str) -> Optional[TransactionStatus]:
        with self._lock:
            self.calls.append(("transaction", signature, commitment))
            responses = self.transactions.get(signature, [None])
            response = _next(responses)
        if isinstance(response, Exception):
            raise response
        return response

    @property
    def call_count(self) -> int:
        with self._lock:
            return len(self.calls)


def succeeded(signature: str) -> TransactionStatus:
    return TransactionStatus(signature=signature, succeeded=True, slot=1, raw={"meta": {"err": None}})


def failed(signature: str) -> TransactionStatus:
    return TransactionStatus(
        signature=signature,
        succeeded=False,
        slot=1,
        raw={"meta": {"err": {"InstructionError": [0, "Custom"]}}},
    )


@pytest.fixture
def recipient():
    return RECIPIENT
