# commands.py
"""
'/command' handling for the front ends.

A line whose first non-blank character is '/' is a command rather than an
expression. Commands read and change the precision policy and the display
settings, list variables and remove them. They never touch the AST.
"""

import logging

from . import config_manager
from . import error as E
from . import Parser
from .MathEngine import MAX_PRECISION
from .Rational import MIN_RADIX, MAX_RADIX

logger = logging.getLogger(__name__)


def parse_bool(text):
    value = text.strip().lower()
    if value in ("t", "true"):
        return True
    if value in ("f", "false"):
        return False
    raise E.CommandError(f"Expected true/false (or t/f), got '{text.strip()}'")


def parse_radix(text):
    try:
        radix = int(text)
    except ValueError:
        raise E.CommandError(f"Radix must be an integer, got '{text}'")
    if radix < MIN_RADIX:
        raise E.CommandError(f"Radix cannot be less than {MIN_RADIX}")
    if radix > MAX_RADIX:
        raise E.CommandError(f"Radix cannot be greater than {MAX_RADIX}")
    return radix


def parse_variable_list(text):
    """Turn '$a $b' into ['a', 'b']."""
    try:
        tokens = Parser.tokenize(text)
    except E.LexError as e:
        raise E.CommandError(f"Invalid variable list: {e}")

    names = []
    b = 0
    while tokens[b].kind != Parser.END:
        if tokens[b].kind != Parser.VARIABLE_SIGIL or tokens[b + 1].kind != Parser.IDENTIFIER:
            raise E.CommandError(f"Expected a variable such as $x, found {tokens[b].describe()}",
                                 position=tokens[b].position)
        names.append(tokens[b + 1].text)
        b += 2
    return names


class Command:
    def __init__(self, name, handler, usage, summary, details="", aliases=()):
        self.name = name
        self.handler = handler
        self.usage = usage
        self.summary = summary
        self.details = details
        self.aliases = tuple(aliases)

    def help_text(self):
        text = f"Usage: {self.usage}\n"
        if self.aliases:
            text += "Alias: " + ", ".join("/" + alias for alias in self.aliases) + "\n"
        return text + "\n" + (self.details or self.summary)


class CommandExecutor:
    """Runs '/commands' against one session's state.

    persist decides whether setting changes and purged variables are written
    back through config_manager.
    """

    def __init__(self, environment, precision, settings=None, persist=True):
        self.environment = environment
        self.precision = precision
        self.persist = persist
        if settings is None:
            settings = config_manager.load_setting_value("all") if persist else dict(config_manager.DEFAULT_SETTINGS)
        self.settings = settings
        self.commands = {}
        self.aliases = {}
        for command in self.default_commands():
            self.register(command)

    def default_commands(self):
        return [
            Command("help", self.cmd_help, "/help [command]", "Gives help with commands",
                    "With no arguments, lists all the available commands. If a command is given "
                    "as an argument, provides more detailed help with the specified command.",
                    aliases=("h",)),
            Command("precision", self.cmd_precision, "/precision [digits]",
                    "Gets/sets the digits computed for irrational results",
                    "If digits are given, irrational results such as sqrt(2) are computed to that "
                    f"many decimal places (1 to {MAX_PRECISION}). "
                    "Without arguments the current value is shown.",
                    aliases=("p",)),
            Command("fractional", self.cmd_fractional, "/fractional [true|false]",
                    "Gets/sets fractional display",
                    "If true, non-integer exact results are shown as fractions instead of decimals.",
                    aliases=("f",)),
            Command("commas", self.cmd_commas, "/commas [true|false]",
                    "Gets/sets thousands separators",
                    "If true, commas are used as thousands separators in decimal output."),
            Command("radix", self.cmd_radix, "/radix [value]", "Gets/sets the current radix",
                    "Value is the radix used to read and show numbers. Digits above 9 are the "
                    "letters a to f, in either case.\n"
                    "If no value is provided, the current setting value is displayed.\n"
                    f"The value given should be an integer between {MIN_RADIX} and {MAX_RADIX} (inclusive)."),
            Command("converttoradix", self.cmd_converttoradix, "/converttoradix [value]",
                    "Gets/sets the output radix",
                    "Value overrides the radix used to show results.\n"
                    "If no value is provided, the current setting value is displayed.\n"
                    f"The value given can be \"none\" or an integer between {MIN_RADIX} and {MAX_RADIX} "
                    "(inclusive)."),
            Command("upper", self.cmd_upper, "/upper [true|false]", "Gets/sets uppercase digits",
                    "If true, digits above 9 are shown in uppercase, otherwise in lowercase."),
            Command("vars", self.cmd_vars, "/vars", "Lists all variables"),
            Command("purgevar", self.cmd_purgevar, "/purgevar $name_1 [$name_2 [...]]",
                    "Unsets variable(s)",
                    "Removes the variable(s) from the session and, if enabled, from the saved "
                    "variables on disk."),
            Command("reloadvar", self.cmd_reloadvar, "/reloadvar $name_1 [$name_2 [...]]",
                    "Reloads variable(s) from the disk",
                    "Reloads the specified variable(s) from the saved variables on disk. A variable "
                    "that was never saved is left unchanged."),
        ]

    def register(self, command):
        if command.name in self.commands or command.name in self.aliases:
            raise ValueError(f"Duplicate command: {command.name}")
        self.commands[command.name] = command
        for alias in command.aliases:
            if alias in self.commands or alias in self.aliases:
                raise ValueError(f"Duplicate alias: {alias}")
            self.aliases[alias] = command.name

    @staticmethod
    def is_command(line):
        return line.lstrip().startswith("/")

    def lookup(self, name):
        name = self.aliases.get(name, name)
        command = self.commands.get(name)
        if command is None:
            raise E.CommandError(f"No such command: '{name}'", code="6002")
        return command

    def execute(self, line):
        """Run one '/command' line and return its output text."""
        parts = line.strip()[1:].split(maxsplit=1)
        if not parts:
            raise E.CommandError("Missing command name after '/'")
        name = parts[0]
        args = parts[1] if len(parts) > 1 else ""
        command = self.lookup(name)
        logger.debug("Running command /%s %r", command.name, args)
        return command.handler(args.strip())

    # -----------------------------
    # Handlers
    # -----------------------------

    def cmd_help(self, args):
        if args:
            return self.lookup(args.lstrip("/")).help_text()
        width = max(len(name) for name in self.commands)
        lines = ["Available commands:"]
        for name in sorted(self.commands):
            lines.append(f"  /{name:{width}} {self.commands[name].summary}")
        return "\n".join(lines)

    def cmd_precision(self, args):
        if not args:
            return str(self.precision.digits)
        try:
            digits = int(args)
        except ValueError:
            raise E.CommandError(f"Precision must be an integer, got '{args}'")
        self.precision.set_precision(digits)
        self._store("precision", digits)
        return "Done"

    def cmd_fractional(self, args):
        return self._toggle("fractions", args)

    def cmd_commas(self, args):
        return self._toggle("commas", args)

    def cmd_vars(self, args):
        if args:
            raise E.CommandError("Too many arguments")
        if not len(self.environment):
            return "No variables set"
        return "\n".join(f"${name} = {value.to_fraction_string()}" for name, value in self.environment.items())

    def cmd_purgevar(self, args):
        names = parse_variable_list(args)
        if not names:
            raise E.CommandError("Expected at least one variable")
        for name in names:
            self.environment.remove(name)
        if self.persist and self.settings.get("persist_variables", True):
            config_manager.save_variables(self.environment)
        return "Done"

    def cmd_reloadvar(self, args):
        names = list(dict.fromkeys(parse_variable_list(args)))
        if not names:
            raise E.CommandError("Expected at least one variable")
        if not (self.persist and self.settings.get("persist_variables", True)):
            raise E.CommandError("/reloadvar is unavailable because variables are not saved to disk")
        saved = config_manager.load_variables()
        lines = []
        for name in names:
            value = saved.get(name)
            if value is None:
                lines.append(f"${name} unchanged")
            else:
                self.environment.set(name, value)
                lines.append(f"Set ${name} to {value.to_fraction_string()}")
        return "\n".join(lines)

    def cmd_radix(self, args):
        if not args:
            return str(self.settings.get("radix", 10))
        self._store("radix", parse_radix(args))
        return "Done"

    def cmd_converttoradix(self, args):
        if not args:
            return str(self.settings.get("convert_to_radix"))
        self._store("convert_to_radix", None if args.lower() == "none" else parse_radix(args))
        return "Done"

    def cmd_upper(self, args):
        return self._toggle("upper", args)

    def _toggle(self, key, args):
        if not args:
            return str(self.settings.get(key, False)).lower()
        self._store(key, parse_bool(args))
        return "Done"

    def _store(self, key, value):
        """Change a setting in place, so front ends sharing the dict see it."""
        if self.persist:
            config_manager.update_setting(key, value)
        self.settings[key] = value
