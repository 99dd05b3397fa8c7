# MathEngine.py
"""
Core calculation engine for the Exact Calculator.

Pipeline
--------
1) Tokenizer (Parser.tokenize): raw input string -> flat list of tokens.
2) Parser (Parser.parse): builds an AST (recursive-descent, precedence aware).
3) Evaluator (evaluate): reduces the AST with exact Rational arithmetic against an
   Environment of $variables. Irrational results (roots, fractional exponents)
   are approximated, tagged Approximate and carry a bound on their error;
   evaluate_to_precision() re-runs with more working digits until that bound
   fits PrecisionPolicy.digits.
4) evaluate_line(): the single entry point for front ends. It never raises for
   bad input; errors come back as Error values and cancellation as Cancelled.
5) format_result(): renders any result for display using the user settings.
"""

import logging
import math
import threading

from . import error as E
from . import Parser
from . import ScientificEngine
from .Rational import Rational, ZERO

logger = logging.getLogger(__name__)

DEFAULT_PRECISION = 20
MAX_PRECISION = 1000

# Most extra working digits tried before reporting fewer places
MAX_EXTRA_DIGITS = 1000

APPROX_SIGN = "\u2248"  # "≈"


# -----------------------------
# Session state
# -----------------------------

class Environment:
    """Variable store: name (without '$') -> Rational. Last write wins."""

    def __init__(self, variables=None):
        self._variables = dict(variables or {})

    def get(self, name):
        return self._variables.get(name)

    def set(self, name, value):
        if not isinstance(value, Rational):
            raise TypeError("Environment only stores Rational values")
        self._variables[name] = value

    def remove(self, name):
        """Drop a variable. Returns True if it existed."""
        return self._variables.pop(name, None) is not None

    def names(self):
        return sorted(self._variables)

    def items(self):
        return sorted(self._variables.items())

    def copy(self):
        return Environment(self._variables)

    def __contains__(self, name):
        return name in self._variables

    def __len__(self):
        return len(self._variables)

    def __iter__(self):
        return iter(self.names())

    def __eq__(self, other):
        if not isinstance(other, Environment):
            return NotImplemented
        return self._variables == other._variables

    def __repr__(self):
        return f"Environment({self._variables!r})"


class PrecisionPolicy:
    """Number of decimal digits computed for irrational results."""

    def __init__(self, digits=DEFAULT_PRECISION):
        self._digits = self.validate(digits)

    @staticmethod
    def validate(digits):
        if isinstance(digits, bool) or not isinstance(digits, int):
            raise E.ConfigurationError(f"Precision must be an integer, got {digits!r}")
        if digits < 1 or digits > MAX_PRECISION:
            raise E.ConfigurationError(f"Precision must be between 1 and {MAX_PRECISION}, got {digits}")
        return digits

    @property
    def digits(self):
        return self._digits

    def set_precision(self, digits):
        self._digits = self.validate(digits)
        logger.debug("Precision set to %d digits", digits)

    def __repr__(self):
        return f"PrecisionPolicy(digits={self._digits})"


class CancellationToken:
    """Cooperative cancellation flag, safe to set from another thread."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    def is_cancelled(self):
        return self._event.is_set()

    def reset(self):
        self._event.clear()

    def check(self):
        """Raise Cancelled if cancellation was requested. Polled by long loops."""
        if self._event.is_set():
            raise E.Cancelled()


# -----------------------------
# Results
# -----------------------------

class Exact:
    """An exactly known value. text/rounded/assigned are filled by evaluate_line."""
    def __init__(self, value, text=None, rounded=False, assigned=None):
        self.value = value
        self.text = text
        self.rounded = rounded
        self.assigned = assigned

    def __repr__(self):
        return f"Exact({self.value!r})"


class Approximate:
    """An irrational value, shown to `digits` places.

    error bounds |value - true value|, or is None when no bound is known.
    """
    def __init__(self, value, digits, error=None, text=None, assigned=None):
        self.value = value
        self.digits = digits
        self.error = error
        self.text = text
        self.assigned = assigned

    def __repr__(self):
        return f"Approximate({self.value!r}, digits={self.digits})"


class Error:
    """A failed line. kind is the error class name (e.g. 'DivisionByZeroError')."""
    def __init__(self, kind, position, message, code="9999", equation=None):
        self.kind = kind
        self.position = position
        self.message = message
        self.code = code
        self.equation = equation

    @classmethod
    def from_exception(cls, error):
        return cls(error.kind, error.position, error.message, error.code, error.equation)

    def __repr__(self):
        return f"Error({self.kind}, position={self.position}, message={self.message!r})"


class Cancelled:
    def __repr__(self):
        return "Cancelled()"


# -----------------------------
# Error bounds
# -----------------------------

def _error(result):
    """Error bound of an evaluated node: zero when exact, None when unknown."""
    if isinstance(result, Approximate):
        return result.error
    return ZERO


def _combine(value, operands, digits, error=ZERO, exact=True):
    """Wrap value as Exact, or as Approximate if it or any operand is approximate."""
    if exact and not any(isinstance(operand, Approximate) for operand in operands):
        return Exact(value)
    return Approximate(value, digits, error)


def _arithmetic_error(operator, left, right):
    """Bound the error of left <operator> right from the operands' bounds."""
    ea, eb = _error(left), _error(right)
    if ea is None or eb is None:
        return None
    if ea.is_zero() and eb.is_zero():
        return ZERO
    a, b = left.value.abs(), right.value.abs()

    if operator in ("+", "-"):
        return ea.add(eb)
    if operator == "*":
        return a.multiply(eb).add(b.multiply(ea)).add(ea.multiply(eb))
    if operator == "/":
        if b <= eb:
            return None
        return a.multiply(eb).add(b.multiply(ea)).divide(b.multiply(b.subtract(eb)))
    if operator == "%":
        # The remainder is a - b*k; its error is bounded while k stays the same
        quotients = [math.trunc(x.divide(y).to_fraction())
                     for x in (left.value.subtract(ea), left.value.add(ea))
                     for y in (right.value.subtract(eb), right.value.add(eb))
                     if not y.is_zero()]
        if b <= eb or len(set(quotients)) != 1:
            return None
        return ea.add(eb * abs(quotients[0]))
    raise ValueError(f"No error bound for operator {operator!r}")


def _power_error(left, right, value, exact, digits, cancel_token=None):
    """Bound the error of left ^ right."""
    ea, eb = _error(left), _error(right)
    own = ZERO if exact else ScientificEngine.approximation_error(digits)
    if ea is None or eb is None:
        return None
    if ea.is_zero() and eb.is_zero():
        return own
    x, y = left.value, right.value

    if eb.is_zero() and y.is_integer():
        n = abs(y.numerator)
        if n == 0:
            return ZERO
        # |(x + d)^n - x^n| <= (|x| + e)^n - |x|^n
        spread = x.abs().add(ea).power(n).subtract(x.abs().power(n))
        if y.numerator > 0:
            return spread
        low = x.abs().power(n)
        if low <= spread:
            return None
        return spread.divide(low.multiply(low.subtract(spread)))

    # x^y is monotone in |x| and in y, so the extremes sit at the corners
    if x.is_negative() and not eb.is_zero():
        return None
    # a negative base only pairs with odd q; x^y is then -(|x|^y) for odd p
    reference = value.negate() if x.is_negative() and y.numerator % 2 else value
    low_base = x.abs().subtract(ea)
    if low_base <= ZERO:
        return None
    slack = ScientificEngine.approximation_error(digits)
    ends = []
    for corner_base in {low_base, x.abs().add(ea)}:
        for corner_exponent in {y.subtract(eb), y.add(eb)}:
            try:
                end = ScientificEngine.decimal_power(corner_base, corner_exponent, digits, cancel_token)
            except E.DomainError:
                return None
            ends += [end.subtract(slack), end.add(slack)]
    return max(reference.subtract(end).abs() for end in ends)


def _tolerance(digits, radix=10):
    return Rational(1, radix ** (digits + ScientificEngine.GUARD_DIGITS))


def _decimal_digits(n):
    """Upper estimate of the number of decimal digits of n > 0."""
    return n.bit_length() * 30103 // 100000 + 1


def _shortfall(error, digits, radix=10):
    """Extra working digits needed to bring error within tolerance, or None if unbounded."""
    if error is None:
        return None
    ratio = error.divide(_tolerance(digits, radix))
    if ratio <= 1:
        return 0
    return _decimal_digits(-(-ratio.numerator // ratio.denominator)) + 1


def _supported_digits(error, digits, radix=10):
    """Most places (up to digits) that error still allows, or None if not even 0."""
    if error is None:
        return None
    while digits >= 0 and error > _tolerance(digits, radix):
        digits -= 1
    return digits if digits >= 0 else None


# -----------------------------
# Evaluator
# -----------------------------

def _with_position(error, node):
    if error.position is None:
        error.position = node.position
    return error


def evaluate(node, environment, precision, cancel_token=None, functions=None, extra_digits=0):
    """Reduce an AST to Exact or Approximate. Raises MathError subclasses.

    Approximations are computed at precision.digits + extra_digits places and
    carry a bound on their error.
    """
    if cancel_token is not None:
        cancel_token.check()
    functions = ScientificEngine.FUNCTIONS if functions is None else functions
    digits = precision.digits + extra_digits

    def sub(child):
        return evaluate(child, environment, precision, cancel_token, functions, extra_digits)

    if isinstance(node, Parser.Number):
        return Exact(node.value)

    elif isinstance(node, Parser.Variable):
        value = environment.get(node.name)
        if value is None:
            raise E.UndefinedVariableError(node.name, position=node.position)
        return Exact(value)

    elif isinstance(node, Parser.UnaryMinus):
        operand = sub(node.operand)
        return _combine(operand.value.negate(), [operand], digits, _error(operand))

    elif isinstance(node, Parser.BinOp):
        left = sub(node.left)
        right = sub(node.right)
        try:
            if node.operator == "+":
                value = left.value.add(right.value)
            elif node.operator == "-":
                value = left.value.subtract(right.value)
            elif node.operator == "*":
                value = left.value.multiply(right.value)
            elif node.operator == "/":
                value = left.value.divide(right.value)
            elif node.operator == "%":
                value = left.value.modulo(right.value)
            elif node.operator == "^":
                value, exact = ScientificEngine.rational_power(
                    left.value, right.value, digits, cancel_token)
                error = _power_error(left, right, value, exact, digits, cancel_token)
                return _combine(value, [left, right], digits, error, exact)
            else:
                raise E.SyntaxError(f"Unknown operator: {node.operator}", position=node.position)
        except (E.DivisionByZeroError, E.DomainError) as e:
            raise _with_position(e, node)
        return _combine(value, [left, right], digits, _arithmetic_error(node.operator, left, right))

    elif isinstance(node, Parser.FunctionCall):
        function = functions.get(node.name)
        if function is None:
            raise E.SyntaxError(f"Unknown function: '{node.name}'", position=node.position)
        args = [sub(arg) for arg in node.args]
        values = [arg.value for arg in args]
        try:
            value, exact = function(values, digits, cancel_token)
            error = function.error_bound(values, [_error(arg) for arg in args], value, exact,
                                         digits, cancel_token)
        except (E.DivisionByZeroError, E.DomainError) as e:
            raise _with_position(e, node)
        return _combine(value, args, digits, error, exact)

    elif isinstance(node, Parser.Assignment):
        result = sub(node.value)
        environment.set(node.name, result.value)
        result.assigned = node.name
        logger.debug("Assigned $%s = %s", node.name, result.value)
        return result

    else:
        raise TypeError(f"Unknown AST node: {node!r}")


def evaluate_to_precision(node, environment, precision, cancel_token=None, radix=10):
    """Evaluate until an approximation is good to precision.digits places in radix.

    Each pass that falls short is repeated with more working digits. After
    MAX_EXTRA_DIGITS extra digits the result reports the places it supports,
    or fails with DomainError 3107 if it supports none.
    """
    extra = 0
    while True:
        result = evaluate(node, environment, precision, cancel_token, extra_digits=extra)
        if isinstance(result, Exact):
            return result
        shortfall = _shortfall(result.error, precision.digits, radix)
        if shortfall == 0:
            result.digits = precision.digits
            return result
        if extra >= MAX_EXTRA_DIGITS:
            digits = _supported_digits(result.error, precision.digits, radix)
            if digits is None:
                raise E.DomainError("Result too imprecise to show", code="3107", position=node.position)
            logger.debug("Only %d of %d digits supported", digits, precision.digits)
            result.digits = digits
            return result
        step = max(extra, 10) if shortfall is None else shortfall
        extra = min(MAX_EXTRA_DIGITS, extra + step)
        logger.debug("Re-evaluating with %d extra digits", extra)


# -----------------------------
# Public entry point
# -----------------------------

def render(result, precision, commas=False, radix=10, upper=False):
    """Fill in result.text (and Exact.rounded) with the rendering in radix."""
    if isinstance(result, Exact):
        result.text, exact = result.value.to_decimal_string(precision.digits, commas, radix, upper)
        result.rounded = not exact
    elif isinstance(result, Approximate):
        result.text, _ = result.value.to_decimal_string(result.digits, commas, radix, upper, trim=False)
    return result


def display_options(settings=None):
    """Keyword arguments for evaluate_line taken from the user settings."""
    settings = settings or {}
    return {
        "commas": settings.get("commas", False),
        "radix": settings.get("radix", 10),
        "output_radix": settings.get("convert_to_radix"),
        "upper": settings.get("upper", False),
    }


def evaluate_line(problem, environment, precision, cancel_token=None, commas=False,
                  radix=10, output_radix=None, upper=False):
    """Main API: tokenize -> parse -> evaluate -> render.

    Literals are read in radix; the result is shown in output_radix (radix when
    None). Returns Exact, Approximate, Error or Cancelled. Never raises for user
    input, and leaves the environment untouched unless the line was a
    successful assignment.
    """
    output_radix = output_radix or radix
    try:
        tree = Parser.parse(Parser.tokenize(problem, radix), radix=radix)
        if isinstance(tree, Parser.Assignment):
            result = evaluate_to_precision(tree.value, environment, precision, cancel_token, output_radix)
            environment.set(tree.name, result.value)
            result.assigned = tree.name
            logger.debug("Assigned $%s = %s", tree.name, result.value)
        else:
            result = evaluate_to_precision(tree, environment, precision, cancel_token, output_radix)
        return render(result, precision, commas, output_radix, upper)

    except E.Cancelled:
        logger.debug("Cancelled: %s", problem)
        return Cancelled()
    # Our domain errors: attach the source line
    except E.MathError as e:
        e.equation = problem
        logger.debug("%s: %s", e.kind, e)
        return Error.from_exception(e)
    except RecursionError:
        return Error("SyntaxError", 0, "Expression nested too deeply", "3102", problem)
    # Anything else is a bug; report it instead of crashing the session
    except Exception as e:
        logger.exception("Unexpected error while evaluating %r", problem)
        return Error("InternalError", None, f"Unexpected error: {e}", "9999", problem)


# -----------------------------
# Result formatting
# -----------------------------

def format_result(result, settings=None):
    """Render a result for display, following the user's settings.

    - fractions: non-integer exact values as 'num/den' ('mixed_fractions' -> '1 1/2'),
      written in the output radix
    - approximate values and rounded decimals get '≈' instead of '='
    - assignments are prefixed with the variable name
    """
    settings = settings or {}

    if isinstance(result, Cancelled):
        return "Cancelled"

    if isinstance(result, Error):
        location = "" if result.position is None else f" (at position {result.position})"
        return f"Error {result.code}: {E.describe(result.code)} {result.message}{location}"

    prefix = f"${result.assigned} " if result.assigned else ""

    if isinstance(result, Exact):
        if settings.get("fractions", False) and not result.value.is_integer():
            radix = settings.get("convert_to_radix") or settings.get("radix", 10)
            text = result.value.to_fraction_string(settings.get("mixed_fractions", False),
                                                   radix, settings.get("upper", False))
            return f"{prefix}= {text}"
        sign = APPROX_SIGN if result.rounded else "="
        return f"{prefix}{sign} {result.text}"

    return f"{prefix}{APPROX_SIGN} {result.text}"


def main():
    """Simple REPL-like runner for manual testing of the engine."""
    environment = Environment()
    precision = PrecisionPolicy()
    print("Enter the problem: ")
    problem = input()
    print(format_result(evaluate_line(problem, environment, precision)))


if __name__ == "__main__":
    # Allow running this module directly for quick CLI tests:
    #   python -m exactcalc.MathEngine
    main()
