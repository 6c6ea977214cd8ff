from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional


class PaymentStatus(str, Enum):
    CREATED = "Created"
    POLLING = "Polling"
    CONFIRMED = "Confirmed"
    CANCELLED = "Cancelled"
    EXPIRED = "Expired"

    @property
    def is_terminal(self) -> bool:
        return self in (
            PaymentStatus.CONFIRMED,
            PaymentStatus.CANCELLED,
            PaymentStatus.EXPIRED,
        )


@dataclass(frozen=True)
class PaymentRequest:
    recipient: str
    amount: Decimal
    reference: str
    memo: Optional[str] = None
    label: Optional[str] = None
    message: Optional[str] = None


@dataclass(frozen=True)
class SignatureInfo:
    signature: str
    slot: Optional[int] = None
    block_time: Optional[int] = None
    err: Any = None


@dataclass(frozen=True)
class TransactionStatus:
    signature: str
    succeeded: bool
    slot: Optional[int] = None
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)
