import pytest

from exactcalc import error as E
from exactcalc import ScientificEngine as SE
from exactcalc.MathEngine import CancellationToken
from exactcalc.Rational import Rational, ZERO, ONE


@pytest.mark.parametrize("n, degree, expected", [
    (27, 3, 3),
    (26, 3, 2),
    (10 ** 40, 2, 10 ** 20),
    (2 ** 64 - 1, 2, 2 ** 32 - 1),
    (0, 5, 0),
    (1, 7, 1),
    (12345, 1, 12345),
])
def test_integer_root(n, degree, expected):
    assert SE.integer_root(n, degree) == expected


def test_integer_root_rejects_negative_radicand():
    with pytest.raises(ValueError):
        SE.integer_root(-4, 2)


def test_exact_root():
    assert SE.exact_root(Rational(4, 9), 2) == Rational(2, 3)
    assert SE.exact_root(Rational(-8, 27), 3) == Rational(-2, 3)
    assert SE.exact_root(Rational(2), 2) is None
    assert SE.exact_root(Rational(4, 3), 2) is None


def test_exact_root_of_negative_even_degree():
    with pytest.raises(E.DomainError):
        SE.exact_root(Rational(-4), 2)


def test_approximate_root_is_within_tolerance():
    value = SE.approximate_root(Rational(2), 2, 20)
    assert abs(value * value - 2) < Rational(1, 10 ** 20)
    assert value.to_decimal_string(20)[0] == "1.41421356237309504880"


@pytest.mark.parametrize("base, exponent, expected", [
    (Rational(100), Rational(1, 2), Rational(10)),
    (Rational(59049), Rational(1, 10), Rational(3)),
    (Rational(-8), Rational(1, 3), Rational(-2)),
    (Rational(4), Rational(-1, 2), Rational(1, 2)),
    (Rational(8), Rational(2, 3), Rational(4)),
    (Rational(2), Rational(-3), Rational(1, 8)),
    (ZERO, Rational(1, 2), ZERO),
])
def test_rational_power_exact(base, exponent, expected):
    assert SE.rational_power(base, exponent, 10) == (expected, True)


def test_rational_power_irrational():
    value, exact = SE.rational_power(Rational(-100), Rational(7, 3), 10)
    assert not exact
    assert value.to_decimal_string(10)[0] == "-46415.8883361278"


def test_rational_power_domain_errors():
    with pytest.raises(E.DomainError):
        SE.rational_power(Rational(-4), Rational(1, 2), 10)
    with pytest.raises(E.DivisionByZeroError):
        SE.rational_power(ZERO, Rational(-1, 2), 10)
    with pytest.raises(E.DomainError):
        SE.rational_power(Rational(-2), Rational(1, 2 * SE.MAX_ROOT_DEGREE), 10)


def within(value, exponent, target, digits):
    """True if target lies between (value -+ 10^-digits) ** exponent."""
    ulp = Rational(1, 10 ** digits)
    return (value - ulp).power(exponent) <= target <= (value + ulp).power(exponent)


def test_fine_exponents_are_approximated():
    # 2^1.2345 = 2^(2469/2000): the 2000th power of the result brackets 2^2469
    value, exact = SE.rational_power(Rational(2), Rational(2469, 2000), 20)
    assert not exact
    assert within(value, 2000, Rational(2).power(2469), 20)

    value, exact = SE.rational_power(Rational(2), Rational(1, 10000), 20)
    assert not exact
    assert within(value, 10000, Rational(2), 20)


def test_fine_exponent_of_negative_base():
    value, exact = SE.rational_power(Rational(-8), Rational(1001, 1001 * 3 + 2), 10)
    assert not exact
    assert value.is_negative()


def test_fine_exponent_with_exact_result():
    assert SE.rational_power(Rational(2).power(1001), Rational(1, 1001), 10) == (Rational(2), True)
    assert SE.rational_power(ONE, Rational(1, 5000), 10) == (ONE, True)


def test_decimal_power():
    value = SE.decimal_power(Rational(2), Rational(1, 2), 30)
    assert abs(value * value - 2) < Rational(1, 10 ** 30)
    assert SE.decimal_power(Rational(10), Rational(-500001, 1000), 20) == ZERO
    with pytest.raises(E.DomainError) as excinfo:
        SE.decimal_power(Rational(10), Rational(100000001, 1000), 20)
    assert excinfo.value.code == "3026"


def test_decimal_power_polls_cancellation():
    token = CancellationToken()
    token.cancel()
    with pytest.raises(E.Cancelled):
        SE.decimal_power(Rational(2), Rational(12345, 10000), 20, token)


def test_root_polls_cancellation():
    token = CancellationToken()
    token.cancel()
    with pytest.raises(E.Cancelled):
        SE.root(Rational(2), 2, 100, token)


def test_function_table():
    assert set(SE.FUNCTIONS) >= {"sqrt", "abs", "max", "min"}
    assert SE.FUNCTIONS["sqrt"].accepts(1)
    assert not SE.FUNCTIONS["sqrt"].accepts(2)
    assert not SE.FUNCTIONS["max"].accepts(0)
    assert SE.FUNCTIONS["max"].accepts(5)
    assert SE.FUNCTIONS["sqrt"].arity_text() == "1 argument"
    assert SE.FUNCTIONS["min"].arity_text() == "at least 1 argument"


def test_builtin_functions():
    values = [Rational(3), Rational(-7, 2), Rational(1, 2)]
    assert SE.FUNCTIONS["max"](values, 20) == (Rational(3), True)
    assert SE.FUNCTIONS["min"](values, 20) == (Rational(-7, 2), True)
    assert SE.FUNCTIONS["abs"]([Rational(-7, 2)], 20) == (Rational(7, 2), True)
    assert SE.FUNCTIONS["sqrt"]([Rational(9, 4)], 20) == (Rational(3, 2), True)
    with pytest.raises(E.DomainError):
        SE.FUNCTIONS["sqrt"]([Rational(-1)], 20)


def test_register_function():
    table = dict(SE.FUNCTIONS)
    double = SE.Function("double", lambda args, digits, token: (args[0] * 2, True))
    SE.register_function(double, table)
    assert table["double"]([Rational(3)], 20) == (Rational(6), True)
    assert "double" not in SE.FUNCTIONS


def test_error_bound_of_exact_arguments():
    sqrt = SE.FUNCTIONS["sqrt"]
    assert sqrt.error_bound([Rational(4)], [ZERO], Rational(2), True, 20) == ZERO
    assert sqrt.error_bound([Rational(2)], [ZERO], Rational(1), False, 20) == SE.approximation_error(20)


def test_error_bound_follows_monotone_functions():
    sqrt = SE.FUNCTIONS["sqrt"]
    error = Rational(1, 10 ** 6)
    value, exact = sqrt([Rational(100)], 20)
    bound = sqrt.error_bound([Rational(100)], [error], value, exact, 20)
    # d sqrt(x) / dx = 1/20 at x = 100
    assert Rational(1, 10 ** 8) * 4 < bound < Rational(1, 10 ** 8) * 6


def test_error_bound_clips_sqrt_at_zero():
    sqrt = SE.FUNCTIONS["sqrt"]
    bound = sqrt.error_bound([ZERO], [Rational(1, 100)], ZERO, True, 20)
    assert Rational(1, 10) <= bound <= Rational(1, 10) + SE.approximation_error(20)


def test_error_bound_of_lipschitz_functions():
    errors = [Rational(1, 10), Rational(1, 1000)]
    assert SE.FUNCTIONS["max"].error_bound([ONE, Rational(2)], errors, Rational(2), True, 20) == Rational(1, 10)
    assert SE.FUNCTIONS["abs"].error_bound([ONE], [None], ONE, True, 20) is None
