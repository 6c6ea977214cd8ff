"""
Solana Pay transfer requests and on-chain payment verification.
"""

from .exceptions import (  # noqa: F401
    InvalidAddress,
    InvalidAmount,
    InvalidDescriptor,
    PaymentTimeoutError,
    SolanaPayError,
    TransientLedgerError,
    ValidationError,
)
from .ledger import LedgerClient  # noqa: F401
from .models import PaymentRequest, PaymentStatus, SignatureInfo, TransactionStatus  # noqa: F401
from .poller import PollerState, VerificationPoller  # noqa: F401
from .request_builder import RequestBuilder  # noqa: F401
from .solana_rpc import SolanaRpcClient  # noqa: F401
from .url import encode_url, parse_url  # noqa: F401
