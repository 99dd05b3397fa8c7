class MathError(Exception):
    """Base class for every error the calculator reports to the user.

    kind is the stable name front ends switch on, code indexes ERROR_MESSAGES,
    position is the 0-based index of the offending character (or None).
    """
    kind = "MathError"
    default_code = "9999"

    def __init__(self, message, code=None, equation=None, position=None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.equation = equation
        self.position = position

    def __str__(self):
        if self.position is None:
            return self.message
        return f"{self.message} (at position {self.position})"


class LexError(MathError):
    kind = "LexError"
    default_code = "3101"

class SyntaxError(MathError):
    kind = "SyntaxError"
    default_code = "3102"

class NumberFormatError(MathError):
    kind = "NumberFormatError"
    default_code = "3103"

class UndefinedVariableError(MathError):
    kind = "UndefinedVariableError"
    default_code = "3104"

    def __init__(self, name, code=None, equation=None, position=None):
        super().__init__(f"Unknown variable: ${name}", code=code, equation=equation, position=position)
        self.name = name

class DivisionByZeroError(MathError):
    kind = "DivisionByZeroError"
    default_code = "3003"

class DomainError(MathError):
    kind = "DomainError"
    default_code = "3105"

class Cancelled(MathError):
    kind = "Cancelled"
    default_code = "7001"

    def __init__(self, message="Calculation cancelled", code=None, equation=None, position=None):
        super().__init__(message, code=code, equation=equation, position=position)

class ConfigurationError(MathError):
    kind = "ConfigurationError"
    default_code = "5001"

class CommandError(MathError):
    kind = "CommandError"
    default_code = "6001"




Error_Dictionary = {

    "3" : "Calculator Error",
    "4" : "UI Error",
    "5" : "Configuration Error",
    "6" : "Command Error",
    "7" : "Runtime Error",
    "9" : "Unexpected Error"

}

#Error Messages are structured in:
# 1. Digit: Main Error
# 2. Digit: Specification
# 3. and 4. Digit: Error Number



ERROR_MESSAGES = {
    "3003" : "Division by Zero",
    "3026" : "Number too big.",

    "3101" : "Unrecognized character.",
    "3102" : "Invalid syntax.",
    "3103" : "Invalid number.",
    "3104" : "Unknown variable.",
    "3105" : "Undefined result.",
    "3107" : "Result too imprecise.",

    "4002" : "Calculation already Running!",
    "4501" : "Not all Settings could be saved: ", # + Error raising setting

    "5001" : "Invalid setting.",
    "5002" : "Variables could not be saved.",

    "6001" : "Invalid command.",
    "6002" : "No such command: ", # + command name

    "7001" : "Calculation cancelled.",

    "9999" : "Unexpected Error: " #+error
}


def describe(code):
    """Return the short text for an error code, falling back to the area name."""
    if code in ERROR_MESSAGES:
        return ERROR_MESSAGES[code]
    return Error_Dictionary.get(str(code)[:1], "Unknown error")
