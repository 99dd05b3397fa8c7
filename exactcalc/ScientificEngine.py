# ScientificEngine.py
"""
Roots, rational exponents and the function table.

Everything here works on exact Rationals. When a root is irrational it is
approximated with Newton's method over scaled integers, polling the caller's
cancellation token once per iteration. Exponents too fine for a root (such as
1.2345 = 2469/2000) go through Decimal exp/ln at a working precision chosen so
the result stays within the same tolerance. Functions are looked up by name in
FUNCTIONS, so new ones only need register_function().
"""

import fractions
import logging
from decimal import Decimal, localcontext, ROUND_FLOOR, MAX_EMAX, MIN_EMIN

from . import error as E
from .Rational import Rational, ZERO, ONE, MAX_EXPONENT

logger = logging.getLogger(__name__)

# Extra digits computed beyond the requested precision, so the last reported
# digit survives rounding.
GUARD_DIGITS = 2

# Largest root degree (exponent denominator) taken with Newton's method
MAX_ROOT_DEGREE = 1000

# Results with more integer digits than this are refused
MAX_RESULT_DIGITS = 100000


def approximation_error(digits):
    """Upper bound on the error of any value approximated at `digits`."""
    return Rational(1, 10 ** (digits + GUARD_DIGITS))


# -----------------------------
# Integer and rational roots
# -----------------------------

def integer_root(n, degree, cancel_token=None):
    """Return floor(n ** (1/degree)) for an integer n >= 0.

    Newton's method on integers: starting above the root, the iterates decrease
    strictly until the floor of the root is reached.
    """
    if n < 0:
        raise ValueError("integer_root needs a non-negative radicand")
    if degree < 1:
        raise ValueError("integer_root needs a positive degree")
    if n < 2 or degree == 1:
        return n

    x = 1 << -(-n.bit_length() // degree)
    iterations = 0
    while True:
        if cancel_token is not None:
            cancel_token.check()
        y = ((degree - 1) * x + n // x ** (degree - 1)) // degree
        iterations += 1
        if y >= x:
            break
        x = y
    logger.debug("integer_root: degree %d converged after %d iterations", degree, iterations)
    return x


def exact_root(value, degree, cancel_token=None):
    """Return value ** (1/degree) as a Rational if it is one, else None.

    A reduced fraction has a rational root exactly when its numerator and
    denominator are both perfect powers.
    """
    if value.is_negative() and degree % 2 == 0:
        raise E.DomainError("Even root of a negative number")
    numerator = abs(value.numerator)
    root_numerator = integer_root(numerator, degree, cancel_token)
    if root_numerator ** degree != numerator:
        return None
    root_denominator = integer_root(value.denominator, degree, cancel_token)
    if root_denominator ** degree != value.denominator:
        return None
    root = Rational(root_numerator, root_denominator)
    return root.negate() if value.is_negative() else root


def approximate_root(value, degree, digits, cancel_token=None):
    """Approximate value ** (1/degree) to digits decimal places.

    The result is truncated at digits + GUARD_DIGITS places, so it lies within
    10^-(digits + GUARD_DIGITS) of the true root.
    """
    if value.is_negative() and degree % 2 == 0:
        raise E.DomainError("Even root of a negative number")
    scale_digits = digits + GUARD_DIGITS
    # root * 10^k == (|p|/q * 10^(k*degree)) ^ (1/degree)
    scaled = abs(value.numerator) * 10 ** (scale_digits * degree) // value.denominator
    root = Rational(integer_root(scaled, degree, cancel_token), 10 ** scale_digits)
    return root.negate() if value.is_negative() else root


def root(value, degree, digits, cancel_token=None):
    """Return (root, exact) for value ** (1/degree)."""
    exact = exact_root(value, degree, cancel_token)
    if exact is not None:
        return exact, True
    return approximate_root(value, degree, digits, cancel_token), False


def _exact_rational_root(base, degree, cancel_token=None):
    """The degree-th root of base if it is rational, skipping hopeless searches."""
    if abs(base.numerator) == 1 and base.denominator == 1:
        return base
    # n > 1 can only be a perfect degree-th power if n >= 2^degree
    for n in (abs(base.numerator), base.denominator):
        if n > 1 and degree >= n.bit_length():
            return None
    return exact_root(base, degree, cancel_token)


# -----------------------------
# Powers
# -----------------------------

def _to_decimal(value):
    return Decimal(value.numerator) / Decimal(value.denominator)


def _digit_count(value):
    """Digits before the point of a Decimal (at least 1)."""
    return max(1, value.adjusted() + 1)


def decimal_power(base, exponent, digits, cancel_token=None):
    """Approximate base ** exponent for base > 0 as exp(exponent * ln(base)).

    A cheap 30-digit estimate of log10 of the result picks the working
    precision: enough for the integer digits, digits + GUARD_DIGITS + 1
    fractional digits and the error that ln and the product carry into exp.
    The result is floored, so it lies within 10^-(digits + GUARD_DIGITS).
    """
    if base.is_negative() or base.is_zero():
        raise ValueError("decimal_power needs a positive base")
    scale = digits + GUARD_DIGITS + 1

    with localcontext() as ctx:
        ctx.Emax = MAX_EMAX
        ctx.Emin = MIN_EMIN
        ctx.prec = 30
        estimate = _to_decimal(exponent) * _to_decimal(base).log10()
        if estimate > MAX_RESULT_DIGITS:
            raise E.DomainError(f"Number too large (more than {MAX_RESULT_DIGITS} digits)", code="3026")
        if estimate < -scale:
            return ZERO

        ctx.prec = (scale + max(0, int(estimate)) + 2 + _digit_count(estimate * 3)
                    + _digit_count(_to_decimal(exponent)) + 10)
        logger.debug("decimal_power: log10 estimate %s, working precision %d", estimate, ctx.prec)
        if cancel_token is not None:
            cancel_token.check()
        logarithm = _to_decimal(base).ln()
        if cancel_token is not None:
            cancel_token.check()
        result = (_to_decimal(exponent) * logarithm).exp()
        if cancel_token is not None:
            cancel_token.check()
        floored = result.quantize(Decimal(1).scaleb(-scale), rounding=ROUND_FLOOR)

    fraction = fractions.Fraction(floored)
    return Rational(fraction.numerator, fraction.denominator)


def rational_power(base, exponent, digits, cancel_token=None):
    """Return (base ** exponent, exact) for Rationals base and exponent.

    Integer exponents are exact. For p/q the result is exact when base is a
    perfect q-th power. Otherwise it is approximated: by a root of base^p when
    q is small enough, else through decimal_power.
    """
    if exponent.is_integer():
        return base.power(exponent.numerator), True

    p, q = exponent.numerator, exponent.denominator
    if base.is_zero():
        if p < 0:
            raise E.DivisionByZeroError("Division by zero (0 to a negative power)", code="3003")
        return ZERO, True
    if base.is_negative() and q % 2 == 0:
        raise E.DomainError("Even root of a negative number")

    exact = _exact_rational_root(base, q, cancel_token)
    if exact is not None:
        return exact.power(p), True

    if q <= MAX_ROOT_DEGREE and abs(p) <= MAX_EXPONENT:
        radicand = base.power(abs(p))
        if p < 0:
            radicand = ONE.divide(radicand)
        return approximate_root(radicand, q, digits, cancel_token), False

    magnitude = decimal_power(base.abs(), exponent, digits, cancel_token)
    if base.is_negative() and p % 2:
        return magnitude.negate(), False
    return magnitude, False


# -----------------------------
# Function table
# -----------------------------

class Function:
    """A callable entry in the function table.

    handler(args, digits, cancel_token) gets the evaluated argument Rationals
    and returns (Rational, exact). A monotone function moves in one direction
    as all of its arguments grow together; the others must change by no more
    than their largest argument change (as abs, max and min do).
    """
    def __init__(self, name, handler, min_args=1, max_args=1, description="",
                 monotone=True, lower_limit=None):
        self.name = name
        self.handler = handler
        self.min_args = min_args
        self.max_args = max_args
        self.description = description
        self.monotone = monotone
        self.lower_limit = lower_limit

    def accepts(self, count):
        if count < self.min_args:
            return False
        return self.max_args is None or count <= self.max_args

    def arity_text(self):
        if self.max_args is None:
            return f"at least {self.min_args} argument{'s' if self.min_args != 1 else ''}"
        if self.min_args == self.max_args:
            return f"{self.min_args} argument{'s' if self.min_args != 1 else ''}"
        return f"{self.min_args} to {self.max_args} arguments"

    def error_bound(self, args, errors, value, exact, digits, cancel_token=None):
        """Bound |value - f(true arguments)| when each |args[i] - true| <= errors[i].

        Returns None when no bound is known.
        """
        own = ZERO if exact else approximation_error(digits)
        if any(error is None for error in errors):
            return None
        if all(error.is_zero() for error in errors):
            return own
        if not self.monotone:
            return max(errors).add(own)

        low = [arg.subtract(error) for arg, error in zip(args, errors)]
        if self.lower_limit is not None:
            low = [max(bound, self.lower_limit) for bound in low]
        high = [arg.add(error) for arg, error in zip(args, errors)]

        ends = []
        for bounds in (low, high):
            try:
                end, end_exact = self(bounds, digits, cancel_token)
            except (E.DomainError, E.DivisionByZeroError):
                return None
            slack = ZERO if end_exact else approximation_error(digits)
            ends += [end.subtract(slack), end.add(slack)]
        return max(value.subtract(end).abs() for end in ends)

    def __call__(self, args, digits, cancel_token=None):
        return self.handler(args, digits, cancel_token)

    def __repr__(self):
        return f"Function('{self.name}')"


def _sqrt(args, digits, cancel_token):
    value = args[0]
    if value.is_negative():
        raise E.DomainError("sqrt of negative number")
    return root(value, 2, digits, cancel_token)


def _abs(args, digits, cancel_token):
    return args[0].abs(), True


def _max(args, digits, cancel_token):
    return max(args), True


def _min(args, digits, cancel_token):
    return min(args), True


FUNCTIONS = {
    "sqrt": Function("sqrt", _sqrt, description="Square root, exact for perfect squares",
                     lower_limit=ZERO),
    "abs": Function("abs", _abs, description="Absolute value", monotone=False),
    "max": Function("max", _max, max_args=None, description="Largest argument", monotone=False),
    "min": Function("min", _min, max_args=None, description="Smallest argument", monotone=False),
}


def register_function(function, table=None):
    """Add (or replace) a function in the table used by the parser and evaluator."""
    table = FUNCTIONS if table is None else table
    table[function.name] = function
    return function
