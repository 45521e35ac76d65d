import logging
from typing import Dict

from common.elliptic_curve_config import FIELD_ORDER, G1_GENERATOR, PointG1
from common.errors import IncorrectNumberOfPackages, InvalidSignatureShare, UnknownIdentifier, VerificationFailure
from common.identifier import Identifier
from common.schnorr import Schnorr, Signature
from distributed_keygen.keys import PublicKeyPackage
from distributed_signing.signing_protocol import (
    SignatureShare, SigningPackage, lagrange_coefficient, signing_context,
)
from py_ecc.optimized_bls12_381 import add, eq, multiply

logger = logging.getLogger(__name__)


def verify_signature_share(
    share: SignatureShare,
    verifying_share: PointG1,
    signing_package: SigningPackage,
    verifying_key: PointG1,
) -> bool:
    """
    Check z_i*G == D_i + rho_i*E_i + c*lambda_i*Y_i for one participant.
    """
    binding_factors, _, challenge = signing_context(verifying_key, signing_package)
    commitments = signing_package.signing_commitments[share.identifier]
    lambda_i = lagrange_coefficient(share.identifier, signing_package)

    lhs = multiply(G1_GENERATOR, share.share)
    rhs = add(commitments.hiding, multiply(commitments.binding, binding_factors[share.identifier]))
    rhs = add(rhs, multiply(verifying_share, (challenge * lambda_i) % FIELD_ORDER))
    return eq(lhs, rhs)


def aggregate(
    signing_package: SigningPackage,
    signature_shares: Dict[Identifier, SignatureShare],
    public_key_package: PublicKeyPackage,
) -> Signature:
    """
    Combine the signature shares into one group signature (R, z), z = sum z_i.

    If the combined signature does not verify, every share is checked on its
    own and the first invalid one is reported as the culprit. If every share
    verifies, the failure is internal and raises VerificationFailure.
    """
    committed = set(signing_package.signing_commitments)
    if set(signature_shares) != committed:
        raise IncorrectNumberOfPackages(
            f"Got signature shares from {len(signature_shares)} participants, "
            f"{len(committed)} committed to this signing package"
        )
    for identifier, share in signature_shares.items():
        if share.identifier != identifier:
            raise UnknownIdentifier(f"Share keyed by {identifier} was produced by {share.identifier}", culprit=identifier)
        if identifier not in public_key_package.verifying_shares:
            raise UnknownIdentifier(f"{identifier} is not part of the group", culprit=identifier)

    verifying_key = public_key_package.verifying_key
    _, group_commitment, _ = signing_context(verifying_key, signing_package)

    z = 0
    for share in signature_shares.values():
        z = (z + share.share) % FIELD_ORDER
    signature = Signature(R=group_commitment, z=z)

    if not Schnorr.verify(verifying_key, signing_package.message, signature):
        for identifier in sorted(signature_shares):
            if not verify_signature_share(
                signature_shares[identifier],
                public_key_package.verifying_shares[identifier],
                signing_package,
                verifying_key,
            ):
                raise InvalidSignatureShare(f"Invalid signature share from {identifier}", culprit=identifier)
        raise VerificationFailure("Aggregated signature is invalid but every share verified")

    logger.debug("Aggregated %d signature shares", len(signature_shares))
    return signature
