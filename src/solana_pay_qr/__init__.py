"""
Solana Pay request issuing with polling-based on-chain payment verification.
"""

from .config import SolanaPayConfig, load_config  # noqa: F401
from .session import PaymentSession  # noqa: F401
