class SolanaPayError(Exception):
    """Base class for Solana Pay request and verification errors."""


class ValidationError(SolanaPayError, ValueError):
    """Raised when a payment request cannot be built from the given input."""


class InvalidAddress(ValidationError):
    """Raised when the recipient is not a base58 ledger address."""


class InvalidAmount(ValidationError):
    """Raised when the amount is not a finite, strictly positive decimal."""


class InvalidDescriptor(ValidationError):
    """Raised when a payment URL cannot be parsed."""


class TransientLedgerError(SolanaPayError):
    """Raised when a ledger RPC call fails in a way that may succeed later."""


class PaymentTimeoutError(SolanaPayError):
    """Raised when payment is not confirmed within the configured window."""
