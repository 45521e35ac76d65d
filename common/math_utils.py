from typing import Dict, List

from common.elliptic_curve_config import FIELD_ORDER, G1_INFINITY, PointG1
from py_ecc.optimized_bls12_381 import multiply, add


def modular_inverse(a: int, m: int = FIELD_ORDER) -> int:
    """
    Compute the multiplicative inverse of a modulo m.
    For example: (a * modular_inverse(a, m)) % m == 1
    """
    if a % m == 0:
        raise ValueError("0 has no modular inverse")
    if m <= 1:
        raise ValueError("The modulus must be greater than 1")

    return pow(a, -1, m)


def lagrange_basis(points_x: List[int], i: int, x: int, field_order: int = FIELD_ORDER) -> int:
    """
    Computes the Lagrange basis polynomial L_i(x).
    points_x: List of x-coordinates of the points involved in the interpolation [x_0, x_1, ..., x_k].
    i: The i-th basis polynomial L_i is being evaluated.
    x: The point to be evaluated.
    """
    xi = points_x[i]
    numerator = 1
    denominator = 1

    for j, xj in enumerate(points_x):
        if i == j:
            continue
        if xj == xi:
            raise ValueError(f"Duplicate x-coordinate {xi} in interpolation set")
        numerator = (numerator * (x - xj)) % field_order
        denominator = (denominator * (xi - xj)) % field_order

    return (numerator * modular_inverse(denominator, field_order)) % field_order


def lagrange_coefficient_at_zero(points_x: List[int], xi: int) -> int:
    """
    The coefficient lambda_i that weights the share held at xi when the secret
    p(0) is recovered from the shares held at points_x.
    """
    if xi not in points_x:
        raise ValueError(f"{xi} is not one of the interpolation points")
    return lagrange_basis(points_x, points_x.index(xi), 0)


def interpolate_scalars(points: Dict[int, int], x_new: int) -> int:
    """
    Computes the polynomial at x_new given a set of scalar points using Lagrange interpolation.
    This is how the group secret p(0) is recovered from a threshold of shares.

    Args:
        points (dict): A dictionary of points of the form {x_coord: scalar_value}.
        x_new (int): The new x-coordinate for which the value is to be evaluated (e.g., 0).
    """
    if not points:
        raise ValueError("Point set cannot be empty")

    points_x = list(points.keys())
    result_scalar = 0
    for i, y_i in enumerate(points.values()):
        basis_val = lagrange_basis(points_x, i, x_new)
        result_scalar = (result_scalar + y_i * basis_val) % FIELD_ORDER

    return result_scalar


def interpolate_g1_points(points: Dict[int, PointG1], x_new: int) -> PointG1:
    """
    Computes the value of a polynomial "in the exponent" at x_new given a set of
    G1 points, e.g. the group verifying key P(0) from a threshold of verifying shares.
    """
    points_x = list(points.keys())

    result_point = G1_INFINITY
    for i, y_i_point in enumerate(points.values()):
        basis_val = lagrange_basis(points_x, i, x_new)
        result_point = add(result_point, multiply(y_i_point, basis_val))

    return result_point
