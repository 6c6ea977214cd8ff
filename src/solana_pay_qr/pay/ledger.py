"""
Read-only ledger interface consumed by the verification poller.
"""

from typing import List, Optional, Protocol

from .models import SignatureInfo, TransactionStatus


class LedgerClient(Protocol):
    """
    Read access to signature history and transaction detail.

    Both calls are eventually consistent: a signature returned by
    get_signatures_for_address may not resolve through get_transaction yet.
    Implementations raise TransientLedgerError for network, timeout and RPC
    failures.
    """

    def get_signatures_for_address(
        self, address: str, limit: int
    ) -> List[SignatureInfo]:
        """Return signatures referencing address, newest first."""
        ...

    def get_transaction(
        self, signature: str, commitment: str
    ) -> Optional[TransactionStatus]:
        """Return the transaction outcome, or None when it is not found yet."""
        ...
