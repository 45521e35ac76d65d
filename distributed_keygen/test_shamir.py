import random

from common.elliptic_curve_config import FIELD_ORDER, G1_GENERATOR
from common.errors import CryptoError, InvalidParameters
from common.identifier import Identifier
from common.math_utils import interpolate_scalars
from distributed_keygen.keys import KeyPackage, SecretShare, dealer_split
from distributed_keygen.shamir import (
    commit_polynomial, create_random_polynomial, evaluate_commitment, evaluate_polynomial,
    sum_commitments, verify_share,
)
from py_ecc.optimized_bls12_381 import eq, multiply


def test_polynomial_and_commitment():
    print("[Test 1] Shares verify against the polynomial commitment")
    coeffs = create_random_polynomial(2, rng=random.Random(11))
    assert len(coeffs) == 3
    assert all(0 < c < FIELD_ORDER for c in coeffs)

    commitment = commit_polynomial(coeffs)
    for x in (1, 2, 7):
        share = evaluate_polynomial(coeffs, x)
        assert verify_share(x, share, commitment)
        assert eq(evaluate_commitment(commitment, x), multiply(G1_GENERATOR, share))
    assert not verify_share(1, evaluate_polynomial(coeffs, 1) + 1, commitment)
    print("✓ [Test 1] Passed")


def test_sum_commitments():
    a = [5, 6]
    b = [7, 8]
    summed = sum_commitments([commit_polynomial(a), commit_polynomial(b)])
    assert summed == commit_polynomial([12, 14])

    try:
        sum_commitments([commit_polynomial([1]), commit_polynomial([1, 2])])
        raise AssertionError("Expected ValueError for commitments of different degrees")
    except ValueError:
        pass


def test_dealer_split_reconstructs_secret():
    print("[Test 2] Any min_signers dealer shares reconstruct the group secret")
    n, t = 5, 3
    shares, public_key_package = dealer_split(n, t, rng=random.Random(5))

    assert sorted(shares) == [Identifier.from_int(i) for i in range(1, n + 1)]
    assert sorted(public_key_package.verifying_shares) == sorted(shares)

    first = {i.value: shares[i].signing_share for i in sorted(shares)[:t]}
    last = {i.value: shares[i].signing_share for i in sorted(shares)[-t:]}
    secret = interpolate_scalars(first, 0)
    assert secret == interpolate_scalars(last, 0)
    assert eq(multiply(G1_GENERATOR, secret), public_key_package.verifying_key)

    for identifier, share in shares.items():
        key_package = KeyPackage.from_secret_share(share)
        assert key_package.verifying_share == public_key_package.verifying_shares[identifier]
        assert key_package.verifying_key == public_key_package.verifying_key
        assert key_package.min_signers == t
    print("✓ [Test 2] Passed")


def test_dealer_split_rejects_invalid_parameters():
    print("[Test 3] Invalid t / n values raise CryptoError")
    for n, t in ((3, 4), (3, 0), (0, 0)):
        try:
            dealer_split(n, t)
            raise AssertionError(f"Expected CryptoError for n={n}, t={t}")
        except InvalidParameters as e:
            assert isinstance(e, CryptoError)
    print("✓ [Test 3] Passed")


def test_tampered_secret_share_rejected():
    shares, _ = dealer_split(3, 2, rng=random.Random(9))
    share = shares[Identifier.from_int(2)]
    tampered = SecretShare(identifier=share.identifier, signing_share=share.signing_share + 1, commitment=share.commitment)
    try:
        KeyPackage.from_secret_share(tampered)
        raise AssertionError("Expected CryptoError for a share that does not match the commitment")
    except CryptoError as e:
        assert e.culprit == share.identifier


if __name__ == "__main__":
    test_polynomial_and_commitment()
    test_sum_commitments()
    test_dealer_split_reconstructs_secret()
    test_dealer_split_rejects_invalid_parameters()
    test_tampered_secret_share_rejected()
