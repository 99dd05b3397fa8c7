# Main.py
""""" Entry point for the Exact Calculator.

   Responsibilities:
   - Detect run mode (script vs PyInstaller.exe)
   - Verify required files exist in development mode
   - Parse arguments, configure logging, load configuration and variables
   - Evaluate --input lines, run the terminal loop (--repl), or start the Qt GUI

"""""
import argparse
import logging
import sys
import threading
from pathlib import Path

from exactcalc import commands
from exactcalc import config_manager
from exactcalc import error as E
from exactcalc import MathEngine
from exactcalc.Rational import validate_radix


# Resolve project root depending on run mode (Script or .exe)

if getattr(sys, 'frozen', False):
    PROJECT_ROOT = Path(sys._MEIPASS)
else:
    PROJECT_ROOT = Path(__file__).resolve().parent

PROMPT_STR = "# "

logger = logging.getLogger(__name__)


def check_files_exist():

    """
      Fail fast in development if required files are missing / moved / renamed.
      In production (.exe) the files are embedded by the bundler, so this is skipped.
    """

    package_dir = PROJECT_ROOT / "exactcalc"
    REQUIRED = [
        package_dir / "UI.py",
        package_dir / "MathEngine.py",
        package_dir / "ScientificEngine.py",
        package_dir / "Parser.py",
        package_dir / "Rational.py",
        package_dir / "config_manager.py",
        package_dir / "ui_strings.json",
    ]

    missing_files = [file_path.name for file_path in REQUIRED if not file_path.exists()]

    if missing_files:
        print("Error: The following files are missing or in the wrong location:")
        for file_name in missing_files:
            print(f"- {file_name}")
        sys.exit(1)


def build_parser():
    parser = argparse.ArgumentParser(description="Exact rational calculator with $variables.")
    parser.add_argument("-i", "--input",
                        help="Evaluate these ';'-separated lines, print the results and exit.")
    parser.add_argument("--repl", action="store_true",
                        help="Run in the terminal instead of opening a window.")
    parser.add_argument("--no-db", action="store_true",
                        help="Neither load nor save variables and settings.")
    parser.add_argument("-p", "--precision", type=int,
                        help="Digits computed for irrational results (overrides the saved setting).")
    parser.add_argument("-r", "--radix", type=int,
                        help="Radix (2-16) used to read and show numbers (overrides the saved setting).")
    parser.add_argument("--debug", action="store_true", help="Verbose logging.")
    return parser


class Session:
    """State shared by the terminal front ends: variables, precision, commands."""

    def __init__(self, persist=True, precision=None, radix=None):
        self.persist = persist
        self.settings = config_manager.load_setting_value("all") if persist \
            else dict(config_manager.DEFAULT_SETTINGS)
        if radix is not None:
            self.settings["radix"] = validate_radix(radix)
        if persist and self.settings["persist_variables"]:
            self.environment = config_manager.load_variables()
        else:
            self.environment = MathEngine.Environment()
        if precision is not None:
            self.precision = MathEngine.PrecisionPolicy(precision)
        else:
            self.precision = config_manager.precision_policy_from_settings(self.settings)
        self.executor = commands.CommandExecutor(self.environment, self.precision,
                                                 self.settings, persist=persist)

    def run_line(self, line, cancel_token=None):
        """Return (output_text, failed) for one input line."""
        if self.executor.is_command(line):
            try:
                output = self.executor.execute(line)
            except E.MathError as e:
                return f"Error {e.code}: {E.describe(e.code)} {e}", True
            return output, False

        result = MathEngine.evaluate_line(line, self.environment, self.precision, cancel_token,
                                          **MathEngine.display_options(self.settings))
        output = MathEngine.format_result(result, self.settings)
        if getattr(result, "assigned", None) and self.persist and self.settings["persist_variables"]:
            try:
                config_manager.save_variables(self.environment)
            except E.ConfigurationError as e:
                output += f"\nError {e.code}: {e.message}"
        return output, isinstance(result, MathEngine.Error)


def run_input(session, text):
    failed = False
    for line in text.split(";"):
        if not line.strip():
            continue
        output, line_failed = session.run_line(line)
        print(output)
        failed = failed or line_failed
    return 1 if failed else 0


def evaluate_in_thread(session, line, cancel_token, outcome):
    """Thread target for run_repl: store run_line's (output, failed) in outcome["result"].

    A crash is stored as a failed line, so the loop always has something to print.
    """
    try:
        outcome["result"] = session.run_line(line, cancel_token)
    except Exception as e:
        logger.exception("Crash while running %r", line)
        outcome["result"] = (f"Error 9999: {E.describe('9999')} {e}", True)
    return outcome


def run_repl(session):
    """Plain terminal loop. Ctrl-C cancels a running calculation, Ctrl-D exits."""
    while True:
        try:
            line = input(PROMPT_STR)
        except EOFError:
            print()
            return 0
        except KeyboardInterrupt:
            print()
            continue
        if not line.strip():
            continue

        cancel_token = MathEngine.CancellationToken()
        outcome = {}
        worker = threading.Thread(target=evaluate_in_thread, args=(session, line, cancel_token, outcome),
                                  daemon=True)
        worker.start()
        while worker.is_alive():
            try:
                worker.join(0.1)
            except KeyboardInterrupt:
                cancel_token.cancel()
        print(outcome["result"][0])


def main(argv=None):

    """
    Load configuration and start the requested front end.
    - Keep this thin: no business logic here.
    """

    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.debug else logging.WARNING,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        session = Session(persist=not args.no_db, precision=args.precision, radix=args.radix)
    except E.ConfigurationError as e:
        print(f"Error {e.code}: {e.message}", file=sys.stderr)
        return 2

    if args.input is not None:
        return run_input(session, args.input)
    if args.repl:
        return run_repl(session)

    # Delegate control to the UI layer; the UI owns the event loop.
    from exactcalc import UI
    return UI.main(persist=session.persist, precision=session.precision, radix=args.radix)


if __name__ == "__main__":
    # Two explicit modes aid debugging & packaging clarity.
    is_running_as_exe = getattr(sys, 'frozen', False)

    if not is_running_as_exe:
        check_files_exist()
    sys.exit(main())
