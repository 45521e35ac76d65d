"""
Key material produced by the trusted dealer and by distributed key generation.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, Tuple

from common.elliptic_curve_config import G1_GENERATOR, PointG1, canonical_point, point_to_bytes, random_scalar, scalar_to_bytes
from common.errors import InvalidParameters, InvalidSecretShare
from common.identifier import Identifier
from distributed_keygen.shamir import Commitment, commit_polynomial, create_random_polynomial, evaluate_polynomial, verify_share
from py_ecc.optimized_bls12_381 import multiply

logger = logging.getLogger(__name__)

MAX_SIGNERS_LIMIT = 0xFFFF


def validate_parameters(max_signers: int, min_signers: int) -> None:
    if not 1 <= max_signers <= MAX_SIGNERS_LIMIT:
        raise InvalidParameters(f"max_signers must be in [1, {MAX_SIGNERS_LIMIT}], got {max_signers}")
    if min_signers < 1:
        raise InvalidParameters(f"min_signers must be at least 1, got {min_signers}")
    if min_signers > max_signers:
        raise InvalidParameters(
            f"The threshold value cannot be greater than the total number of signers ({min_signers} > {max_signers})"
        )


@dataclass(frozen=True)
class SecretShare:
    """
    A share handed out by the trusted dealer, together with the dealer's
    commitment so the receiver can check it.
    """
    identifier: Identifier
    signing_share: int = field(repr=False)
    commitment: Commitment

    def verify(self) -> bool:
        return verify_share(self.identifier.value, self.signing_share, self.commitment)


@dataclass(frozen=True)
class KeyPackage:
    """
    Everything one participant needs to sign: its secret signing share, the
    matching verifying share and the group verifying key.
    """
    identifier: Identifier
    signing_share: int = field(repr=False)
    verifying_share: PointG1
    verifying_key: PointG1
    min_signers: int

    def __post_init__(self):
        object.__setattr__(self, "verifying_share", canonical_point(self.verifying_share))
        object.__setattr__(self, "verifying_key", canonical_point(self.verifying_key))

    @classmethod
    def from_secret_share(cls, secret_share: SecretShare) -> "KeyPackage":
        if not secret_share.verify():
            raise InvalidSecretShare(
                f"Secret share for {secret_share.identifier} does not match the dealer's commitment",
                culprit=secret_share.identifier,
            )
        return cls(
            identifier=secret_share.identifier,
            signing_share=secret_share.signing_share,
            verifying_share=multiply(G1_GENERATOR, secret_share.signing_share),
            verifying_key=secret_share.commitment[0],
            min_signers=len(secret_share.commitment),
        )

    def to_bytes(self) -> bytes:
        return (
            self.identifier.to_bytes()
            + scalar_to_bytes(self.signing_share)
            + point_to_bytes(self.verifying_share)
            + point_to_bytes(self.verifying_key)
            + self.min_signers.to_bytes(2, 'big')
        )


@dataclass(frozen=True)
class PublicKeyPackage:
    """
    The group's public verification material: every participant's verifying
    share and the group verifying key.
    """
    verifying_shares: Dict[Identifier, PointG1]
    verifying_key: PointG1

    def __post_init__(self):
        shares = {i: canonical_point(self.verifying_shares[i]) for i in sorted(self.verifying_shares)}
        object.__setattr__(self, "verifying_shares", shares)
        object.__setattr__(self, "verifying_key", canonical_point(self.verifying_key))

    def to_bytes(self) -> bytes:
        encoded = point_to_bytes(self.verifying_key) + len(self.verifying_shares).to_bytes(2, 'big')
        for identifier, share in self.verifying_shares.items():
            encoded += identifier.to_bytes() + point_to_bytes(share)
        return encoded


def dealer_split(max_signers: int, min_signers: int, rng=None) -> Tuple[Dict[Identifier, SecretShare], PublicKeyPackage]:
    """
    Generate a fresh group secret and split it into max_signers Shamir shares,
    any min_signers of which reconstruct it. Identifiers are 1..max_signers.

    Returns:
        - A dictionary {identifier: SecretShare}
        - The group's PublicKeyPackage
    """
    validate_parameters(max_signers, min_signers)

    coeffs = create_random_polynomial(min_signers - 1, rng=rng, constant_term=random_scalar(rng))
    commitment = commit_polynomial(coeffs)

    shares = {}
    verifying_shares = {}
    for i in range(1, max_signers + 1):
        identifier = Identifier.from_int(i)
        signing_share = evaluate_polynomial(coeffs, i)
        shares[identifier] = SecretShare(identifier=identifier, signing_share=signing_share, commitment=commitment)
        verifying_shares[identifier] = multiply(G1_GENERATOR, signing_share)

    logger.debug("Dealer split a secret into %d shares with threshold %d", max_signers, min_signers)
    return shares, PublicKeyPackage(verifying_shares=verifying_shares, verifying_key=commitment[0])
