import secrets
from typing import List, Sequence, Tuple

from common.elliptic_curve_config import G1_GENERATOR, G1_INFINITY, FIELD_ORDER, PointG1, canonical_point
from py_ecc.optimized_bls12_381 import add, eq, multiply

# Feldman commitment to a polynomial: [c0*G, c1*G, ..., c_{degree}*G]
Commitment = Tuple[PointG1, ...]

_SYSTEM_RANDOM = secrets.SystemRandom()


def create_random_polynomial(degree: int, field_order: int = FIELD_ORDER, rng=None, constant_term: int = None) -> List[int]:
    """
    Creates a random polynomial of degree t-1.
    Returns the list of coefficients of the polynomial [c0, c1, ..., c_{degree}], where c0 is a secret.
    The coefficients are random integers from 1 to field_order-1; c0 is taken from
    constant_term when one is given.
    """
    if degree < 0:
        return []
    rng = rng or _SYSTEM_RANDOM
    coeffs = [rng.randrange(1, field_order) for _ in range(degree + 1)]
    if constant_term is not None:
        coeffs[0] = constant_term % field_order
    return coeffs


def evaluate_polynomial(coeffs: Sequence[int], x: int, field_order: int = FIELD_ORDER) -> int:
    """
    Evaluate the polynomial at the point x (using Horner's rule for greater efficiency).
    """
    if not coeffs:
        return 0

    result = 0
    for coeff in reversed(coeffs):
        result = (result * x + coeff) % field_order
    return result


def commit_polynomial(coeffs: Sequence[int]) -> Commitment:
    return tuple(canonical_point(multiply(G1_GENERATOR, c)) for c in coeffs)


def evaluate_commitment(commitment: Commitment, x: int) -> PointG1:
    """
    Evaluate a committed polynomial "in the exponent": sum_k C_k * x^k = p(x)*G.
    """
    result = G1_INFINITY
    power = 1
    for C_k in commitment:
        result = add(result, multiply(C_k, power))
        power = (power * x) % FIELD_ORDER
    return result


def sum_commitments(commitments: Sequence[Commitment]) -> Commitment:
    """
    Coefficient-wise sum of commitments of equal degree; commits to the sum of
    the underlying polynomials.
    """
    if not commitments:
        raise ValueError("Cannot sum an empty list of commitments")
    degree = len(commitments[0])
    if any(len(c) != degree for c in commitments):
        raise ValueError("Commitments have different degrees")

    summed = []
    for k in range(degree):
        C_k = G1_INFINITY
        for commitment in commitments:
            C_k = add(C_k, commitment[k])
        summed.append(canonical_point(C_k))
    return tuple(summed)


def verify_share(x: int, share: int, commitment: Commitment) -> bool:
    """
    Check that share = p(x) for the polynomial p committed to by commitment.
    """
    return eq(multiply(G1_GENERATOR, share), evaluate_commitment(commitment, x))
