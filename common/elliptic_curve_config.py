import hashlib
import secrets
from typing import Tuple

from py_ecc.optimized_bls12_381 import G1, FQ, Z1, curve_order, is_inf, normalize
from py_ecc.optimized_bls12_381.optimized_curve import is_on_curve, b

PointG1 = Tuple[FQ, FQ, FQ]  # Jacobian representation of a point in G1

FIELD_ORDER = curve_order

# Generator of G1
G1_GENERATOR = G1

# Point at infinity (identity element) of G1
G1_INFINITY = Z1

SCALAR_SIZE = 32
POINT_SIZE = 96

# Domain separation for every hash used by the signing and keygen protocols
CONTEXT_STRING = b"FROST-BLS12381G1-SHA512-v1"

_SYSTEM_RANDOM = secrets.SystemRandom()


def canonical_point(P: PointG1) -> PointG1:
    """
    Bring a point into affine form with z = 1.

    Two canonical points are equal as tuples exactly when they encode the same
    group element, so dataclasses holding them compare bit-for-bit.
    """
    if is_inf(P):
        return G1_INFINITY
    x, y = normalize(P)
    return (x, y, FQ.one())


def point_to_bytes(P: PointG1) -> bytes:
    if is_inf(P):
        return b"\x00" * POINT_SIZE
    x, y = normalize(P)
    return x.n.to_bytes(48, 'big') + y.n.to_bytes(48, 'big')


def point_from_bytes(data: bytes) -> PointG1:
    if len(data) != POINT_SIZE:
        raise ValueError(f"A G1 point is encoded in {POINT_SIZE} bytes, got {len(data)}")
    if data == b"\x00" * POINT_SIZE:
        return G1_INFINITY
    P = (FQ(int.from_bytes(data[:48], 'big')), FQ(int.from_bytes(data[48:], 'big')), FQ.one())
    if not is_on_curve(P, b):
        raise ValueError("Encoded point is not on the curve")
    return P


def scalar_to_bytes(k: int) -> bytes:
    return (k % FIELD_ORDER).to_bytes(SCALAR_SIZE, 'big')


def random_scalar(rng=None) -> int:
    """
    Sample a uniformly random non-zero scalar.

    rng may be any random.Random-compatible object; the system CSPRNG is used
    when none is given.
    """
    return (rng or _SYSTEM_RANDOM).randrange(1, FIELD_ORDER)


def random_bytes(length: int, rng=None) -> bytes:
    if rng is None:
        return secrets.token_bytes(length)
    return rng.getrandbits(8 * length).to_bytes(length, 'big')


def hash_to_bytes(tag: bytes, *parts: bytes) -> bytes:
    h = hashlib.sha512()
    h.update(CONTEXT_STRING)
    h.update(tag)
    for part in parts:
        h.update(part)
    return h.digest()


def hash_to_scalar(tag: bytes, *parts: bytes) -> int:
    """
    Hash the tagged inputs to a scalar. The 512-bit digest is reduced modulo
    the group order, which keeps the bias negligible.
    """
    return int.from_bytes(hash_to_bytes(tag, *parts), 'big') % FIELD_ORDER


if __name__ == "__main__":
    print(f"G1 generator = {point_to_bytes(G1_GENERATOR).hex()}")
    print(f"Field order  = {FIELD_ORDER}")
