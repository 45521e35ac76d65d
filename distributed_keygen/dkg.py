"""
The three parts of Pedersen distributed key generation with proofs of
knowledge (the FROST keygen).

Each function is pure: it takes the caller's secret package and the packages
accumulated from peers, and returns the next secret package plus the packages
to send. Nothing here knows about transport or ordering.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, Mapping, Tuple

from common.elliptic_curve_config import G1_GENERATOR, FIELD_ORDER
from common.errors import (
    IncorrectNumberOfCommitments, IncorrectNumberOfPackages, InvalidProofOfKnowledge,
    InvalidSecretShare, UnknownIdentifier,
)
from common.identifier import Identifier
from common.schnorr import ProofOfKnowledge, Schnorr
from distributed_keygen.keys import KeyPackage, PublicKeyPackage, validate_parameters
from distributed_keygen.shamir import (
    Commitment, commit_polynomial, create_random_polynomial, evaluate_commitment,
    evaluate_polynomial, sum_commitments, verify_share,
)
from py_ecc.optimized_bls12_381 import eq, multiply

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Round1Package:
    """Broadcast to every peer: the polynomial commitment and the proof of knowledge."""
    commitment: Commitment
    proof_of_knowledge: ProofOfKnowledge


@dataclass(frozen=True)
class Round1SecretPackage:
    identifier: Identifier
    coefficients: Tuple[int, ...] = field(repr=False)
    commitment: Commitment
    min_signers: int
    max_signers: int


@dataclass(frozen=True)
class Round2Package:
    """Sent to exactly one peer: the sender's polynomial evaluated at the peer's identifier."""
    signing_share: int = field(repr=False)


@dataclass(frozen=True)
class Round2SecretPackage:
    identifier: Identifier
    commitment: Commitment
    secret_share: int = field(repr=False)
    min_signers: int
    max_signers: int


def dkg_round1(identifier: Identifier, max_signers: int, min_signers: int, rng=None) -> Tuple[Round1SecretPackage, Round1Package]:
    """
    Sample a random polynomial of degree min_signers - 1, commit to it and prove
    knowledge of its constant term.
    """
    validate_parameters(max_signers, min_signers)

    coefficients = create_random_polynomial(min_signers - 1, rng=rng)
    commitment = commit_polynomial(coefficients)
    proof = Schnorr.prove_knowledge(identifier.to_bytes(), coefficients[0], rng=rng)

    secret_package = Round1SecretPackage(
        identifier=identifier,
        coefficients=tuple(coefficients),
        commitment=commitment,
        min_signers=min_signers,
        max_signers=max_signers,
    )
    return secret_package, Round1Package(commitment=commitment, proof_of_knowledge=proof)


def _check_round1_packages(own: Identifier, round1_packages: Mapping[Identifier, Round1Package], max_signers: int) -> None:
    if len(round1_packages) != max_signers - 1:
        raise IncorrectNumberOfPackages(
            f"Expected {max_signers - 1} round 1 packages, got {len(round1_packages)}"
        )
    if own in round1_packages:
        raise UnknownIdentifier(f"Round 1 packages must not include the receiver's own package ({own})", culprit=own)


def dkg_round2(secret_package: Round1SecretPackage, round1_packages: Mapping[Identifier, Round1Package]) -> Tuple[Round2SecretPackage, Dict[Identifier, Round2Package]]:
    """
    Verify every peer's proof of knowledge and evaluate the local polynomial at
    each peer's identifier.

    Returns:
        - The round 2 secret package
        - A dictionary {peer_identifier: Round2Package}, one package per peer
    """
    _check_round1_packages(secret_package.identifier, round1_packages, secret_package.max_signers)

    round2_packages = {}
    for sender in sorted(round1_packages):
        package = round1_packages[sender]
        if len(package.commitment) != secret_package.min_signers:
            raise IncorrectNumberOfCommitments(
                f"Participant {sender} committed to {len(package.commitment)} coefficients, "
                f"expected {secret_package.min_signers}",
                culprit=sender,
            )
        if not Schnorr.verify_knowledge(sender.to_bytes(), package.commitment[0], package.proof_of_knowledge):
            raise InvalidProofOfKnowledge(f"Invalid proof of knowledge from participant {sender}", culprit=sender)

        round2_packages[sender] = Round2Package(
            signing_share=evaluate_polynomial(secret_package.coefficients, sender.value)
        )

    round2_secret = Round2SecretPackage(
        identifier=secret_package.identifier,
        commitment=secret_package.commitment,
        secret_share=evaluate_polynomial(secret_package.coefficients, secret_package.identifier.value),
        min_signers=secret_package.min_signers,
        max_signers=secret_package.max_signers,
    )
    return round2_secret, round2_packages


def dkg_round3(
    secret_package: Round2SecretPackage,
    round1_packages: Mapping[Identifier, Round1Package],
    round2_packages: Mapping[Identifier, Round2Package],
) -> Tuple[KeyPackage, PublicKeyPackage]:
    """
    Verify the shares addressed to this participant, sum them into its signing
    share and derive the group's public key package.
    """
    own = secret_package.identifier
    _check_round1_packages(own, round1_packages, secret_package.max_signers)
    if len(round2_packages) != len(round1_packages):
        raise IncorrectNumberOfPackages(
            f"Expected {len(round1_packages)} round 2 packages, got {len(round2_packages)}"
        )
    for sender in round2_packages:
        if sender not in round1_packages:
            raise UnknownIdentifier(f"Round 2 package from {sender} has no matching round 1 package", culprit=sender)

    signing_share = secret_package.secret_share
    for sender in sorted(round2_packages):
        share = round2_packages[sender].signing_share
        if not verify_share(own.value, share, round1_packages[sender].commitment):
            raise InvalidSecretShare(f"Secret share from participant {sender} failed verification", culprit=sender)
        signing_share = (signing_share + share) % FIELD_ORDER

    group_commitment = sum_commitments(
        [secret_package.commitment] + [round1_packages[sender].commitment for sender in sorted(round1_packages)]
    )
    verifying_key = group_commitment[0]
    verifying_shares = {
        identifier: evaluate_commitment(group_commitment, identifier.value)
        for identifier in sorted(list(round1_packages) + [own])
    }

    verifying_share = multiply(G1_GENERATOR, signing_share)
    if not eq(verifying_share, verifying_shares[own]):
        raise InvalidSecretShare(f"Signing share of {own} is inconsistent with the group commitment", culprit=own)

    key_package = KeyPackage(
        identifier=own,
        signing_share=signing_share,
        verifying_share=verifying_share,
        verifying_key=verifying_key,
        min_signers=secret_package.min_signers,
    )
    logger.debug("Participant %s derived its key package", own)
    return key_package, PublicKeyPackage(verifying_shares=verifying_shares, verifying_key=verifying_key)
