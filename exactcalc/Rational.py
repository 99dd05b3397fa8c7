# Rational.py
"""
Exact rational numbers for the calculator.

A Rational is immutable and always stored in lowest terms with a positive
denominator; zero is always 0/1. fractions.Fraction already keeps these
invariants over Python's arbitrary-precision int, so Rational wraps one and adds
the literal parsing, exponent rules and radix rendering the calculator needs.
"""

import fractions
import functools
import math
import re
from decimal import Decimal

from . import error as E

# Integer exponents beyond this are refused instead of building huge numbers
MAX_EXPONENT = 100000

# Radix range for literals and output
MIN_RADIX = 2
MAX_RADIX = 16

DIGITS = "0123456789abcdef"

_FORMAT_CODES = {2: "b", 8: "o", 16: "x"}
_PAIR = re.compile(r"\s*(-?[0-9]+)\s*(?:/\s*([0-9]+)\s*)?\Z")


def validate_radix(radix):
    if isinstance(radix, bool) or not isinstance(radix, int):
        raise E.ConfigurationError(f"Radix must be an integer, got {radix!r}")
    if radix < MIN_RADIX:
        raise E.ConfigurationError(f"Radix cannot be less than {MIN_RADIX}, got {radix}")
    if radix > MAX_RADIX:
        raise E.ConfigurationError(f"Radix cannot be greater than {MAX_RADIX}, got {radix}")
    return radix


def parse_integer(text, radix=10):
    """Unsigned digits in the given radix -> int, or None if a character is not a digit."""
    allowed = DIGITS[:radix]
    text = text.lower()
    if not text or any(char not in allowed for char in text):
        return None
    # Decimal and the power-of-two bases convert without the int/str digit limit
    if radix == 10:
        return int(Decimal(text))
    if radix in (2, 4, 8, 16):
        return int(text, radix)
    value = 0
    for char in text:
        value = value * radix + DIGITS.index(char)
    return value


def format_integer(value, radix=10, upper=False, commas=False):
    """int -> digits in the given radix, optionally grouped in threes with commas."""
    sign = "-" if value < 0 else ""
    value = abs(value)
    if radix == 10:
        text = str(Decimal(value))
    elif radix in _FORMAT_CODES:
        text = format(value, _FORMAT_CODES[radix])
    else:
        digits = []
        while value:
            value, digit = divmod(value, radix)
            digits.append(DIGITS[digit])
        text = "".join(reversed(digits)) or "0"

    if upper:
        text = text.upper()
    if commas:
        head = len(text) % 3 or 3
        text = ",".join([text[:head]] + [text[i:i + 3] for i in range(head, len(text), 3)])
    return sign + text


@functools.total_ordering
class Rational:
    """Immutable exact fraction."""

    __slots__ = ("_value",)

    def __init__(self, numerator=0, denominator=1):
        if denominator == 0:
            raise E.DivisionByZeroError("Division by zero", code="3003")
        object.__setattr__(self, "_value", fractions.Fraction(numerator, denominator))

    def __setattr__(self, name, value):
        raise AttributeError("Rational is immutable")

    # -----------------------------
    # Construction
    # -----------------------------

    @classmethod
    def _wrap(cls, fraction):
        obj = object.__new__(cls)
        object.__setattr__(obj, "_value", fraction)
        return obj

    @classmethod
    def from_integer(cls, value):
        if not isinstance(value, int):
            raise TypeError(f"Expected an int, got {type(value).__name__}")
        return cls._wrap(fractions.Fraction(value))

    @classmethod
    def from_literal(cls, text, radix=10):
        """Convert 'D+' or 'D+.D*' in the given radix into an exact fraction.

        '_' may separate digits anywhere ('1_000'). '123.45' -> 2469/20, and
        'ff.8' in radix 16 -> 511/2.
        """
        int_part, _, frac_part = text.replace("_", "").partition(".")
        numerator = parse_integer(int_part + frac_part, radix) if int_part else None
        if numerator is None:
            raise E.NumberFormatError(f"Invalid number: '{text}'")
        return cls(numerator, radix ** len(frac_part))

    @classmethod
    def from_pair(cls, text):
        """Inverse of to_pair(): parse 'num/den' (or a bare integer)."""
        match = _PAIR.match(text)
        if not match:
            raise E.NumberFormatError(f"Invalid fraction: '{text}'")
        numerator, denominator = match.groups()
        return cls(int(Decimal(numerator)), int(Decimal(denominator or "1")))

    @classmethod
    def _coerce(cls, other):
        if isinstance(other, Rational):
            return other
        if isinstance(other, int):
            return cls.from_integer(other)
        return None

    # -----------------------------
    # Accessors
    # -----------------------------

    @property
    def numerator(self):
        return self._value.numerator

    @property
    def denominator(self):
        return self._value.denominator

    def is_zero(self):
        return self._value.numerator == 0

    def is_negative(self):
        return self._value.numerator < 0

    def is_integer(self):
        return self._value.denominator == 1

    def to_fraction(self):
        return self._value

    def __bool__(self):
        return not self.is_zero()

    # -----------------------------
    # Arithmetic
    # -----------------------------

    def add(self, other):
        return Rational._wrap(self._value + other._value)

    def subtract(self, other):
        return Rational._wrap(self._value - other._value)

    def multiply(self, other):
        return Rational._wrap(self._value * other._value)

    def divide(self, other):
        if other.is_zero():
            raise E.DivisionByZeroError("Division by zero", code="3003")
        return Rational._wrap(self._value / other._value)

    def modulo(self, other):
        """Remainder with the sign of the dividend: a - b * trunc(a / b)."""
        if other.is_zero():
            raise E.DivisionByZeroError("Division by zero (modulus)", code="3003")
        quotient = math.trunc(self._value / other._value)
        return Rational._wrap(self._value - other._value * quotient)

    def negate(self):
        return Rational._wrap(-self._value)

    def abs(self):
        return Rational._wrap(abs(self._value))

    def power(self, exponent):
        """Raise to an integer power; negative exponents invert the base."""
        if not isinstance(exponent, int):
            raise TypeError("Rational.power only takes integer exponents")
        if self.is_zero():
            if exponent == 0:
                raise E.DomainError("0^0 is undefined")
            if exponent < 0:
                raise E.DivisionByZeroError("Division by zero (0 to a negative power)", code="3003")
        if abs(exponent) > MAX_EXPONENT and abs(self._value) != 1 and not self.is_zero():
            raise E.DomainError(f"Number too large (exponent {exponent})", code="3026")
        return Rational._wrap(self._value ** exponent)

    def __add__(self, other):
        other = self._coerce(other)
        return NotImplemented if other is None else self.add(other)

    __radd__ = __add__

    def __sub__(self, other):
        other = self._coerce(other)
        return NotImplemented if other is None else self.subtract(other)

    def __rsub__(self, other):
        other = self._coerce(other)
        return NotImplemented if other is None else other.subtract(self)

    def __mul__(self, other):
        other = self._coerce(other)
        return NotImplemented if other is None else self.multiply(other)

    __rmul__ = __mul__

    def __truediv__(self, other):
        other = self._coerce(other)
        return NotImplemented if other is None else self.divide(other)

    def __rtruediv__(self, other):
        other = self._coerce(other)
        return NotImplemented if other is None else other.divide(self)

    def __mod__(self, other):
        other = self._coerce(other)
        return NotImplemented if other is None else self.modulo(other)

    def __pow__(self, exponent):
        if not isinstance(exponent, int):
            return NotImplemented
        return self.power(exponent)

    def __neg__(self):
        return self.negate()

    def __abs__(self):
        return self.abs()

    # -----------------------------
    # Comparison
    # -----------------------------

    def compare(self, other):
        """Return -1, 0 or 1. Exact: Fraction compares by cross-multiplication."""
        if self._value < other._value:
            return -1
        if self._value > other._value:
            return 1
        return 0

    def __eq__(self, other):
        other = self._coerce(other)
        if other is None:
            return NotImplemented
        return self._value == other._value

    def __lt__(self, other):
        other = self._coerce(other)
        if other is None:
            return NotImplemented
        return self._value < other._value

    def __hash__(self):
        return hash(self._value)

    # -----------------------------
    # Rendering
    # -----------------------------

    def to_decimal_string(self, max_digits, commas=False, radix=10, upper=False, trim=True):
        """Render with at most max_digits fractional digits in the given radix.

        Rounds half up on the magnitude. Returns (text, exact). With trim, trailing
        zeros are dropped when the value is exact; when it was rounded all
        max_digits digits are kept, so '0.010001' at 5 digits renders as '0.01000'
        and not '0.01'. A value that rounds to zero is never signed.
        """
        if max_digits < 0:
            raise ValueError("max_digits must not be negative")
        scale = radix ** max_digits
        scaled = abs(self._value) * scale
        exact = scaled.denominator == 1
        n, d = scaled.numerator, scaled.denominator
        rounded = (2 * n + d) // (2 * d)
        int_value, frac_value = divmod(rounded, scale)
        sign = "-" if self.is_negative() and rounded else ""

        int_string = format_integer(int_value, radix, upper, commas)
        if max_digits == 0:
            return sign + int_string, exact

        frac_string = format_integer(frac_value, radix, upper).zfill(max_digits)
        if exact and trim:
            frac_string = frac_string.rstrip("0")
        if frac_string:
            return f"{sign}{int_string}.{frac_string}", exact
        return sign + int_string, exact

    def to_fraction_string(self, mixed=False, radix=10, upper=False):
        """'num/den', or a mixed number such as '-1 1/2' when mixed is set."""
        numerator, denominator = self._value.numerator, self._value.denominator
        if denominator == 1:
            return format_integer(numerator, radix, upper)
        den_string = format_integer(denominator, radix, upper)
        if mixed and abs(numerator) > denominator:
            whole, rest = divmod(abs(numerator), denominator)
            sign = "-" if numerator < 0 else ""
            return f"{sign}{format_integer(whole, radix, upper)} {format_integer(rest, radix, upper)}/{den_string}"
        return f"{format_integer(numerator, radix, upper)}/{den_string}"

    def to_pair(self):
        """Lossless 'num/den' text used for persistence."""
        return f"{format_integer(self._value.numerator)}/{format_integer(self._value.denominator)}"

    def __str__(self):
        return self.to_fraction_string()

    def __repr__(self):
        return f"Rational({self.to_pair()})"


ZERO = Rational(0)
ONE = Rational(1)
