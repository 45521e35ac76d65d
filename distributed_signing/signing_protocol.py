# distributed_signing/signing_protocol.py

import logging
from dataclasses import dataclass, field
from typing import Dict, Tuple

from common.elliptic_curve_config import (
    FIELD_ORDER, G1_GENERATOR, G1_INFINITY, PointG1,
    canonical_point, hash_to_bytes, hash_to_scalar, point_to_bytes, random_bytes, scalar_to_bytes,
)
from common.errors import IncorrectCommitment, IncorrectNumberOfCommitments, UnknownIdentifier
from common.identifier import Identifier
from common.math_utils import lagrange_coefficient_at_zero
from common.schnorr import Schnorr
from distributed_keygen.keys import KeyPackage
from py_ecc.optimized_bls12_381 import add, multiply

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SigningCommitments:
    """
    Public half of a participant's round 1 output: D = d*G and E = e*G.
    """
    hiding: PointG1
    binding: PointG1

    def __post_init__(self):
        object.__setattr__(self, "hiding", canonical_point(self.hiding))
        object.__setattr__(self, "binding", canonical_point(self.binding))

    def to_bytes(self) -> bytes:
        return point_to_bytes(self.hiding) + point_to_bytes(self.binding)


@dataclass(frozen=True)
class SigningNonces:
    """
    Secret half of round 1. Must be used for exactly one signature share.
    """
    hiding: int = field(repr=False)
    binding: int = field(repr=False)
    commitments: SigningCommitments


@dataclass(frozen=True)
class SigningPackage:
    """
    The message together with the commitments of every participant taking
    part in this signing run, ordered by identifier.
    """
    signing_commitments: Dict[Identifier, SigningCommitments]
    message: bytes

    def __post_init__(self):
        ordered = {i: self.signing_commitments[i] for i in sorted(self.signing_commitments)}
        object.__setattr__(self, "signing_commitments", ordered)
        object.__setattr__(self, "message", bytes(self.message))

    @property
    def identifiers(self) -> Tuple[Identifier, ...]:
        return tuple(self.signing_commitments)

    def encode_group_commitment_list(self) -> bytes:
        return b"".join(
            identifier.to_bytes() + commitments.to_bytes()
            for identifier, commitments in self.signing_commitments.items()
        )


@dataclass(frozen=True)
class SignatureShare:
    identifier: Identifier
    share: int

    def to_bytes(self) -> bytes:
        return self.identifier.to_bytes() + scalar_to_bytes(self.share)


def generate_nonce(secret: int, rng=None) -> int:
    """
    Hash fresh randomness together with the signing share, so a weak RNG alone
    does not reveal the nonce.
    """
    return hash_to_scalar(b"nonce", random_bytes(32, rng), scalar_to_bytes(secret))


def round1_commit(key_package: KeyPackage, rng=None) -> Tuple[SigningNonces, SigningCommitments]:
    hiding = generate_nonce(key_package.signing_share, rng)
    binding = generate_nonce(key_package.signing_share, rng)
    commitments = SigningCommitments(
        hiding=multiply(G1_GENERATOR, hiding),
        binding=multiply(G1_GENERATOR, binding),
    )
    return SigningNonces(hiding=hiding, binding=binding, commitments=commitments), commitments


def compute_binding_factors(verifying_key: PointG1, signing_package: SigningPackage) -> Dict[Identifier, int]:
    """
    rho_i = H1(Y || H4(m) || H5(commitment list) || i); binds every share to the
    full commitment set and the message.
    """
    prefix = (
        point_to_bytes(verifying_key)
        + hash_to_bytes(b"msg", signing_package.message)
        + hash_to_bytes(b"com", signing_package.encode_group_commitment_list())
    )
    return {
        identifier: hash_to_scalar(b"rho", prefix, identifier.to_bytes())
        for identifier in signing_package.signing_commitments
    }


def compute_group_commitment(signing_package: SigningPackage, binding_factors: Dict[Identifier, int]) -> PointG1:
    # R = sum_i (D_i + rho_i * E_i)
    group_commitment = G1_INFINITY
    for identifier, commitments in signing_package.signing_commitments.items():
        group_commitment = add(group_commitment, commitments.hiding)
        group_commitment = add(group_commitment, multiply(commitments.binding, binding_factors[identifier]))
    return group_commitment


def lagrange_coefficient(identifier: Identifier, signing_package: SigningPackage) -> int:
    return lagrange_coefficient_at_zero([i.value for i in signing_package.identifiers], identifier.value)


def signing_context(verifying_key: PointG1, signing_package: SigningPackage) -> Tuple[Dict[Identifier, int], PointG1, int]:
    """
    Binding factors, group commitment R and challenge c for one signing package.
    """
    binding_factors = compute_binding_factors(verifying_key, signing_package)
    group_commitment = compute_group_commitment(signing_package, binding_factors)
    challenge = Schnorr.challenge(group_commitment, verifying_key, signing_package.message)
    return binding_factors, group_commitment, challenge


def round2_sign(signing_package: SigningPackage, nonces: SigningNonces, key_package: KeyPackage) -> SignatureShare:
    """
    Compute this participant's share z_i = d_i + e_i*rho_i + lambda_i*s_i*c.

    The signing package must already hold the commitments of every signer:
    rho_i and lambda_i depend on the whole set.
    """
    identifier = key_package.identifier
    if len(signing_package.signing_commitments) < key_package.min_signers:
        raise IncorrectNumberOfCommitments(
            f"Signing package has {len(signing_package.signing_commitments)} commitments, "
            f"at least {key_package.min_signers} are required"
        )
    own_commitments = signing_package.signing_commitments.get(identifier)
    if own_commitments is None:
        raise UnknownIdentifier(f"Signing package has no commitment from {identifier}", culprit=identifier)
    if own_commitments != nonces.commitments:
        raise IncorrectCommitment(
            f"Commitment of {identifier} in the signing package does not match its nonces", culprit=identifier
        )

    binding_factors, _, challenge = signing_context(key_package.verifying_key, signing_package)
    lambda_i = lagrange_coefficient(identifier, signing_package)

    z_i = (
        nonces.hiding
        + nonces.binding * binding_factors[identifier]
        + lambda_i * key_package.signing_share * challenge
    ) % FIELD_ORDER
    return SignatureShare(identifier=identifier, share=z_i)
