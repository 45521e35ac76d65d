from common.elliptic_curve_config import FIELD_ORDER, G1_GENERATOR
from common.math_utils import (
    interpolate_g1_points, interpolate_scalars, lagrange_coefficient_at_zero, modular_inverse,
)
from distributed_keygen.shamir import evaluate_polynomial
from py_ecc.optimized_bls12_381 import eq, multiply


def test_modular_inverse():
    assert (7 * modular_inverse(7)) % FIELD_ORDER == 1
    assert (3 * modular_inverse(3, 11)) % 11 == 1
    try:
        modular_inverse(FIELD_ORDER)
        raise AssertionError("Expected ValueError for 0 mod the field order")
    except ValueError:
        pass


def test_interpolate_scalars_recovers_constant_term():
    coeffs = [424242, 17, 99]
    points = {x: evaluate_polynomial(coeffs, x) for x in (2, 5, 9)}
    assert interpolate_scalars(points, 0) == 424242
    assert interpolate_scalars(points, 4) == evaluate_polynomial(coeffs, 4)


def test_lagrange_coefficients_sum_to_one():
    # constant polynomial 1 is reproduced exactly
    xs = [1, 3, 4, 8]
    assert sum(lagrange_coefficient_at_zero(xs, x) for x in xs) % FIELD_ORDER == 1
    try:
        lagrange_coefficient_at_zero(xs, 2)
        raise AssertionError("Expected ValueError for a point outside the set")
    except ValueError:
        pass


def test_duplicate_points_rejected():
    try:
        interpolate_scalars({}, 0)
        raise AssertionError("Expected ValueError for an empty point set")
    except ValueError:
        pass
    try:
        lagrange_coefficient_at_zero([1, 2, 2], 2)
        raise AssertionError("Expected ValueError for duplicate x-coordinates")
    except ValueError:
        pass


def test_interpolate_g1_points():
    coeffs = [31337, 5, 8]
    points = {x: multiply(G1_GENERATOR, evaluate_polynomial(coeffs, x)) for x in (1, 2, 3)}
    assert eq(interpolate_g1_points(points, 0), multiply(G1_GENERATOR, 31337))


if __name__ == "__main__":
    test_modular_inverse()
    test_interpolate_scalars_recovers_constant_term()
    test_lagrange_coefficients_sum_to_one()
    test_duplicate_points_rejected()
    test_interpolate_g1_points()
    print("✓ math_utils tests passed")
