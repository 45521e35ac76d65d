from dataclasses import dataclass

from common.elliptic_curve_config import (
    FIELD_ORDER, G1_GENERATOR, POINT_SIZE, SCALAR_SIZE, PointG1,
    canonical_point, hash_to_scalar, point_from_bytes, point_to_bytes,
    random_scalar, scalar_to_bytes,
)
from py_ecc.optimized_bls12_381 import add, eq, multiply, neg

# Schnorr signatures over BLS12-381 G1, in the FROST flavour:
#   R = k*G,  c = H2(R || Y || m),  z = k + c*x,  valid iff z*G == R + c*Y


@dataclass(frozen=True)
class Signature:
    """
    A group signature (R, z).
    """
    R: PointG1
    z: int

    def __post_init__(self):
        object.__setattr__(self, "R", canonical_point(self.R))

    def to_bytes(self) -> bytes:
        return point_to_bytes(self.R) + scalar_to_bytes(self.z)

    @classmethod
    def from_bytes(cls, data: bytes) -> "Signature":
        if len(data) != POINT_SIZE + SCALAR_SIZE:
            raise ValueError(f"A signature is encoded in {POINT_SIZE + SCALAR_SIZE} bytes, got {len(data)}")
        z = int.from_bytes(data[POINT_SIZE:], 'big')
        if z >= FIELD_ORDER:
            raise ValueError("Signature scalar is not reduced")
        return cls(R=point_from_bytes(data[:POINT_SIZE]), z=z)


@dataclass(frozen=True)
class ProofOfKnowledge:
    """
    Proof that the sender knows the discrete log of its first polynomial
    commitment, bound to the sender's identifier.
    """
    R: PointG1
    mu: int


class Schnorr:
    @staticmethod
    def challenge(R: PointG1, verifying_key: PointG1, message: bytes) -> int:
        return hash_to_scalar(b"chal", point_to_bytes(R), point_to_bytes(verifying_key), message)

    @staticmethod
    def sign(secret: int, message: bytes, rng=None) -> Signature:
        """
        Single-key signature, the degenerate 1-of-1 case of the threshold scheme.
        """
        k = random_scalar(rng)
        R = multiply(G1_GENERATOR, k)
        Y = multiply(G1_GENERATOR, secret)
        c = Schnorr.challenge(R, Y, message)
        return Signature(R=R, z=(k + c * secret) % FIELD_ORDER)

    @staticmethod
    def verify(verifying_key: PointG1, message: bytes, signature: Signature) -> bool:
        """
        Verify a signature against the group verifying key.

        Returns:
            True if z*G == R + c*Y, False otherwise.
        """
        c = Schnorr.challenge(signature.R, verifying_key, message)
        lhs = multiply(G1_GENERATOR, signature.z)
        rhs = add(signature.R, multiply(verifying_key, c))
        return eq(lhs, rhs)

    @staticmethod
    def _knowledge_challenge(identifier_bytes: bytes, commitment: PointG1, R: PointG1) -> int:
        return hash_to_scalar(b"dkg", identifier_bytes, point_to_bytes(commitment), point_to_bytes(R))

    @staticmethod
    def prove_knowledge(identifier_bytes: bytes, secret: int, rng=None) -> ProofOfKnowledge:
        k = random_scalar(rng)
        R = multiply(G1_GENERATOR, k)
        commitment = multiply(G1_GENERATOR, secret)
        c = Schnorr._knowledge_challenge(identifier_bytes, commitment, R)
        return ProofOfKnowledge(R=canonical_point(R), mu=(k + secret * c) % FIELD_ORDER)

    @staticmethod
    def verify_knowledge(identifier_bytes: bytes, commitment: PointG1, proof: ProofOfKnowledge) -> bool:
        # R == mu*G - c*commitment
        c = Schnorr._knowledge_challenge(identifier_bytes, commitment, proof.R)
        expected_R = add(multiply(G1_GENERATOR, proof.mu), neg(multiply(commitment, c)))
        return eq(expected_R, proof.R)


def verify(verifying_key: PointG1, message: bytes, signature: Signature) -> bool:
    return Schnorr.verify(verifying_key, message, signature)
