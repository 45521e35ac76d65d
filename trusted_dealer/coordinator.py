"""
Trusted-dealer flow: one coordinator splits the group secret and runs both
signing rounds for every participant in-process.
"""
import logging
from typing import Dict, Iterable, Optional

from common.errors import ProtocolError, UnknownIdentifier, VerificationFailure
from common.identifier import Identifier
from common.schnorr import Signature, verify
from distributed_keygen.keys import KeyPackage, PublicKeyPackage, SecretShare, dealer_split
from distributed_signing.signing_protocol import (
    SignatureShare, SigningCommitments, SigningNonces, SigningPackage, round1_commit, round2_sign,
)
from signature_reconstruction.reconstructor import aggregate

logger = logging.getLogger(__name__)


class Participant:
    """
    A signer as seen by the coordinator: its key package and the nonce slot
    between round 1 and round 2.
    """

    def __init__(self, key_package: KeyPackage, rng=None):
        self.id = key_package.identifier
        self.key_package = key_package
        self.nonces: Optional[SigningNonces] = None
        self.rng = rng

    @classmethod
    def from_secret_share(cls, secret_share: SecretShare, rng=None) -> "Participant":
        return cls(KeyPackage.from_secret_share(secret_share), rng=rng)

    def round1(self) -> SigningCommitments:
        if self.nonces is not None:
            logger.debug("Participant %s discards nonces from an unfinished signing run", self.id)
        self.nonces, commitments = round1_commit(self.key_package, rng=self.rng)
        return commitments

    def round2(self, signing_package: SigningPackage) -> SignatureShare:
        nonces, self.nonces = self.nonces, None
        if nonces is None:
            raise ProtocolError(f"Participant {self.id} has no nonces; round 1 must run before every round 2")
        return round2_sign(signing_package, nonces, self.key_package)


class Coordinator:
    def __init__(self, public_key_package: PublicKeyPackage, participants: Dict[Identifier, Participant]):
        self.public_key_package = public_key_package
        self.participants = {i: participants[i] for i in sorted(participants)}

    @classmethod
    def generate(cls, max_signers: int, min_signers: int, rng=None) -> "Coordinator":
        shares, public_key_package = dealer_split(max_signers, min_signers, rng=rng)
        participants = {
            identifier: Participant.from_secret_share(secret_share, rng=rng)
            for identifier, secret_share in shares.items()
        }
        logger.info("Dealer generated %d key packages with threshold %d", max_signers, min_signers)
        return cls(public_key_package, participants)

    @classmethod
    def from_key_packages(cls, key_packages: Iterable[KeyPackage], public_key_package: PublicKeyPackage, rng=None) -> "Coordinator":
        """Coordinator over key packages that came out of a DKG run."""
        participants = {kp.identifier: Participant(kp, rng=rng) for kp in key_packages}
        return cls(public_key_package, participants)

    def _select(self, signers: Optional[Iterable[Identifier]]) -> Dict[Identifier, Participant]:
        if signers is None:
            return self.participants
        selected = {}
        for identifier in sorted(set(signers)):
            if identifier not in self.participants:
                raise UnknownIdentifier(f"{identifier} is not a participant of this coordinator", culprit=identifier)
            selected[identifier] = self.participants[identifier]
        return selected

    def sign(self, message: bytes, signers: Optional[Iterable[Identifier]] = None) -> Signature:
        """
        Run both signing rounds over `signers` (every participant by default)
        and return the verified group signature.

        Raises:
            CryptoError: a primitive rejected its input, e.g. too few signers.
            VerificationFailure: the aggregated signature does not verify.
        """
        participants = self._select(signers)

        # Round 1: every commitment must be in before any share is computed
        signing_commitments = {
            identifier: participant.round1() for identifier, participant in participants.items()
        }
        signing_package = SigningPackage(signing_commitments=signing_commitments, message=message)

        # Round 2
        signature_shares = {
            identifier: participant.round2(signing_package) for identifier, participant in participants.items()
        }

        group_signature = aggregate(signing_package, signature_shares, self.public_key_package)

        if not verify(self.public_key_package.verifying_key, message, group_signature):
            raise VerificationFailure("Aggregated signature failed verification against the group key")

        logger.info("Signed %d byte message with %d participants", len(message), len(participants))
        return group_signature


def sign(message: bytes, max_signers: int, min_signers: int, rng=None) -> Signature:
    coordinator = Coordinator.generate(max_signers, min_signers, rng=rng)
    return coordinator.sign(message)
