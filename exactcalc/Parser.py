# Parser.py
"""
Tokenizer and recursive-descent parser.

Pipeline
--------
1) tokenize(): raw input string -> flat list of Token, always ending in END.
2) parse(): token list -> AST (Number, Variable, UnaryMinus, BinOp,
   FunctionCall, Assignment). No evaluation happens here; literals are only
   converted to exact Rationals.
"""

import logging

from . import error as E
from . import ScientificEngine
from .Rational import Rational, DIGITS

logger = logging.getLogger(__name__)

# Token kinds
NUMBER = "NUMBER"
IDENTIFIER = "IDENTIFIER"
OPERATOR = "OPERATOR"
LPAREN = "LPAREN"
RPAREN = "RPAREN"
ASSIGN = "ASSIGN"
VARIABLE_SIGIL = "VARIABLE_SIGIL"
FUNCTION_NAME = "FUNCTION_NAME"
COMMA = "COMMA"
END = "END"

Operations = ["+", "-", "*", "/", "%", "^"]

_SINGLE_CHAR_TOKENS = {
    "(": LPAREN,
    ")": RPAREN,
    "=": ASSIGN,
    ",": COMMA,
    "$": VARIABLE_SIGIL,
}

_DESCRIPTIONS = {
    NUMBER: "number",
    IDENTIFIER: "variable name",
    OPERATOR: "operator",
    LPAREN: "'('",
    RPAREN: "')'",
    ASSIGN: "'='",
    VARIABLE_SIGIL: "'$'",
    FUNCTION_NAME: "function name",
    COMMA: "','",
    END: "end of input",
}


def is_identifier_char(char):
    return char.isascii() and (char.isalnum() or char == "_")


def is_number_char(char):
    return char.isascii() and (char.isalnum() or char in "_.")


def _is_radix_word(word, radix):
    """True if a word starting with a letter is really a number, e.g. 'ff' in radix 16."""
    allowed = DIGITS[:radix] + "_."
    return radix > 10 and all(char in allowed for char in word.lower())


class Token:
    """One lexical token and the index of its first character."""
    def __init__(self, kind, text, position):
        self.kind = kind
        self.text = text
        self.position = position

    def describe(self):
        if self.kind in (NUMBER, OPERATOR, FUNCTION_NAME, IDENTIFIER):
            return f"{_DESCRIPTIONS[self.kind]} '{self.text}'"
        return _DESCRIPTIONS[self.kind]

    def __eq__(self, other):
        if not isinstance(other, Token):
            return NotImplemented
        return (self.kind, self.text, self.position) == (other.kind, other.text, other.position)

    def __repr__(self):
        return f"Token({self.kind}, {self.text!r}, pos={self.position})"


# -----------------------------
# Tokenizer
# -----------------------------

def tokenize(problem, radix=10):
    """Convert raw input into a token list.

    - A digit or '.' starts a NUMBER that runs over letters, digits, '_' and
      '.'; its shape is validated by the parser against the radix, so '1.2.3'
      and '19' in radix 8 report the literal as a whole.
    - Above radix 10 a word made only of digits (such as 'ff') is a NUMBER
      unless '(' follows it.
    - '$' is its own token; the name right after it is an IDENTIFIER.
    - Any other bare name is a FUNCTION_NAME.
    """
    tokens = []
    b = 0

    while b < len(problem):
        current_char = problem[b]

        # --- Whitespace (ignored) ---
        if current_char.isspace():
            b += 1

        # --- Numbers: digits, '_' separators and decimal separator ---
        elif current_char.isascii() and (current_char.isdigit() or current_char == "."):
            start = b
            while b < len(problem) and is_number_char(problem[b]):
                b += 1
            tokens.append(Token(NUMBER, problem[start:b], start))

        # --- Operators ---
        elif current_char in Operations:
            tokens.append(Token(OPERATOR, current_char, b))
            b += 1

        # --- Variables: '$' followed by identifier characters ---
        elif current_char == "$":
            tokens.append(Token(VARIABLE_SIGIL, "$", b))
            b += 1
            start = b
            while b < len(problem) and is_identifier_char(problem[b]):
                b += 1
            if b > start:
                tokens.append(Token(IDENTIFIER, problem[start:b], start))

        # --- Parentheses, '=' and ',' ---
        elif current_char in _SINGLE_CHAR_TOKENS:
            tokens.append(Token(_SINGLE_CHAR_TOKENS[current_char], current_char, b))
            b += 1

        # --- Function names, or letter digits above radix 10 ---
        elif current_char.isascii() and (current_char.isalpha() or current_char == "_"):
            start = end = b
            while end < len(problem) and is_number_char(problem[end]):
                end += 1
            after = problem[end:].lstrip()[:1]
            if current_char != "_" and after != "(" and _is_radix_word(problem[start:end], radix):
                tokens.append(Token(NUMBER, problem[start:end], start))
                b = end
            else:
                while b < len(problem) and is_identifier_char(problem[b]):
                    b += 1
                tokens.append(Token(FUNCTION_NAME, problem[start:b], start))

        else:
            raise E.LexError(f"Unrecognized character '{current_char}'", position=b)

    tokens.append(Token(END, "", len(problem)))
    logger.debug("Tokens: %s", tokens)
    return tokens


# -----------------------------
# AST node types
# -----------------------------

class Number:
    """Literal exact value."""
    def __init__(self, value, position=0):
        self.value = value
        self.position = position

    def __repr__(self):
        return f"Number({self.value})"


class Variable:
    """Reference to $name."""
    def __init__(self, name, position=0):
        self.name = name
        self.position = position

    def __repr__(self):
        return f"Variable('{self.name}')"


class UnaryMinus:
    def __init__(self, operand, position=0):
        self.operand = operand
        self.position = position

    def __repr__(self):
        return f"UnaryMinus({self.operand})"


class BinOp:
    """Binary operation: left <operator> right. position is the operator's."""
    def __init__(self, left, operator, right, position=0):
        self.left = left
        self.operator = operator
        self.right = right
        self.position = position

    def __repr__(self):
        return f"BinOp({self.operator!r}, left={self.left}, right={self.right})"


class FunctionCall:
    def __init__(self, name, args, position=0):
        self.name = name
        self.args = args
        self.position = position

    def __repr__(self):
        return f"FunctionCall({self.name!r}, {self.args})"


class Assignment:
    """$name = expression. Only ever the root of a tree."""
    def __init__(self, name, value, position=0):
        self.name = name
        self.value = value
        self.position = position

    def __repr__(self):
        return f"Assignment('{self.name}', {self.value})"


# -----------------------------
# Parser (recursive descent)
# -----------------------------

class Parser:
    """Builds an AST from a token list.

    Precedence, loosest first: '+' '-' -> '*' '/' '%' -> '^' (right-assoc) ->
    unary sign -> literals, variables, function calls and '( )'.
    """

    def __init__(self, tokens, functions=None, radix=10):
        self.tokens = tokens
        self.index = 0
        self.functions = ScientificEngine.FUNCTIONS if functions is None else functions
        self.radix = radix

    def peek(self, offset=0):
        i = min(self.index + offset, len(self.tokens) - 1)
        return self.tokens[i]

    def advance(self):
        token = self.tokens[self.index]
        if token.kind != END:
            self.index += 1
        return token

    def fail(self, token, expected):
        if token.kind == ASSIGN:
            raise E.SyntaxError("Assignment is only allowed as the whole line ('$name = ...')",
                                position=token.position)
        if token.kind == END and expected == "end of input":
            raise E.SyntaxError("Unexpected end of input", position=token.position)
        raise E.SyntaxError(f"Expected {expected}, found {token.describe()}", position=token.position)

    def expect(self, kind, expected):
        token = self.peek()
        if token.kind != kind:
            self.fail(token, expected)
        return self.advance()

    def parse_line(self):
        if self.peek().kind == END:
            raise E.SyntaxError("No input", position=self.peek().position)

        if (self.peek().kind == VARIABLE_SIGIL and self.peek(1).kind == IDENTIFIER
                and self.peek(2).kind == ASSIGN):
            sigil = self.advance()
            name = self.advance().text
            self.advance()
            value = self.parse_sum()
            tree = Assignment(name, value, sigil.position)
        else:
            tree = self.parse_sum()

        token = self.peek()
        if token.kind != END:
            if token.kind == RPAREN:
                raise E.SyntaxError("Mismatched closing parenthesis ')'", position=token.position)
            self.fail(token, "an operator or end of input")
        return tree

    def parse_sum(self):
        """Addition and subtraction."""
        tree = self.parse_term()
        while self.peek().kind == OPERATOR and self.peek().text in ("+", "-"):
            operator = self.advance()
            right = self.parse_term()
            tree = BinOp(tree, operator.text, right, operator.position)
        return tree

    def parse_term(self):
        """Multiplication, division and modulus."""
        tree = self.parse_power()
        while self.peek().kind == OPERATOR and self.peek().text in ("*", "/", "%"):
            operator = self.advance()
            right = self.parse_power()
            tree = BinOp(tree, operator.text, right, operator.position)
        return tree

    def parse_power(self):
        """Exponentiation, right-associative: 2^3^2 == 2^(3^2)."""
        base = self.parse_unary()
        if self.peek().kind == OPERATOR and self.peek().text == "^":
            operator = self.advance()
            exponent = self.parse_power()
            return BinOp(base, "^", exponent, operator.position)
        return base

    def parse_unary(self):
        """Leading '-' / '+'. Binds tighter than '^', so -2^2 == 4."""
        token = self.peek()
        if token.kind == OPERATOR and token.text in ("+", "-"):
            self.advance()
            operand = self.parse_unary()
            if token.text == "-":
                return UnaryMinus(operand, token.position)
            return operand
        return self.parse_factor()

    def parse_factor(self):
        """Numbers, variables, function calls and sub-expressions in '()'."""
        token = self.peek()

        if token.kind == NUMBER:
            self.advance()
            try:
                value = Rational.from_literal(token.text, self.radix)
            except E.NumberFormatError as e:
                e.position = token.position
                raise
            return Number(value, token.position)

        if token.kind == VARIABLE_SIGIL:
            self.advance()
            name = self.peek()
            if name.kind != IDENTIFIER:
                raise E.SyntaxError("Expected a variable name after '$'", position=name.position)
            self.advance()
            return Variable(name.text, token.position)

        if token.kind == LPAREN:
            self.advance()
            if self.peek().kind == RPAREN:
                raise E.SyntaxError("Empty parentheses", position=self.peek().position)
            tree = self.parse_sum()
            if self.peek().kind != RPAREN:
                if self.peek().kind == END:
                    raise E.SyntaxError("Missing closing parenthesis ')'", position=token.position)
                self.fail(self.peek(), "')'")
            self.advance()
            return tree

        if token.kind == FUNCTION_NAME:
            return self.parse_function()

        if token.kind == END:
            raise E.SyntaxError("Missing number at end of input", position=token.position)
        self.fail(token, "a number, variable, function or '('")

    def parse_function(self):
        token = self.advance()
        function = self.functions.get(token.text)
        if function is None:
            raise E.SyntaxError(f"Unknown function: '{token.text}'", position=token.position)

        if self.peek().kind != LPAREN:
            raise E.SyntaxError(f"Missing opening parenthesis after function '{token.text}'",
                                position=self.peek().position)
        opening = self.advance()

        args = []
        if self.peek().kind != RPAREN:
            args.append(self.parse_sum())
            while self.peek().kind == COMMA:
                self.advance()
                args.append(self.parse_sum())

        if self.peek().kind != RPAREN:
            if self.peek().kind == END:
                raise E.SyntaxError(f"Missing closing parenthesis after function '{token.text}'",
                                    position=opening.position)
            self.fail(self.peek(), "',' or ')'")
        self.advance()

        if not function.accepts(len(args)):
            raise E.SyntaxError(f"{token.text}() takes {function.arity_text()}, got {len(args)}",
                                position=token.position)
        return FunctionCall(token.text, args, token.position)


def parse(tokens, functions=None, radix=10):
    """Parse a token list (from tokenize) into an AST."""
    tree = Parser(tokens, functions, radix).parse_line()
    logger.debug("Final AST: %s", tree)
    return tree
