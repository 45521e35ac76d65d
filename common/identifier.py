from dataclasses import dataclass

from common.elliptic_curve_config import FIELD_ORDER, hash_to_scalar, scalar_to_bytes
from common.errors import InvalidParameters


@dataclass(frozen=True, order=True)
class Identifier:
    """
    A participant handle: a non-zero scalar, used as the x-coordinate of the
    participant's share and as the key of every per-participant map.
    """
    value: int

    def __post_init__(self):
        if not 0 < self.value < FIELD_ORDER:
            raise InvalidParameters(f"Identifier must be a non-zero scalar, got {self.value}")

    @classmethod
    def from_int(cls, i: int) -> "Identifier":
        return cls(i)

    @classmethod
    def derive(cls, seed: bytes) -> "Identifier":
        value = hash_to_scalar(b"id", seed)
        if value == 0:
            raise InvalidParameters("Identifier seed hashes to zero")
        return cls(value)

    def to_bytes(self) -> bytes:
        return scalar_to_bytes(self.value)

    def __str__(self) -> str:
        if self.value < 1 << 16:
            return f"#{self.value}"
        return f"#{self.to_bytes().hex()[:8]}"
