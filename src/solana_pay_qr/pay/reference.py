from dataclasses import dataclass

import base58
from nacl.signing import SigningKey


@dataclass(frozen=True)
class Reference:
    """One-time public key used only to correlate a payment with its request."""

    public_key: bytes

    @property
    def public_key_b58(self) -> str:
        return base58.b58encode(self.public_key).decode("ascii")

    @classmethod
    def generate(cls) -> "Reference":
        # The signing half is dropped here; a reference can never move funds.
        signing_key = SigningKey.generate()
        return cls(public_key=bytes(signing_key.verify_key))


def new_reference() -> str:
    return Reference.generate().public_key_b58
