import pytest

from exactcalc import config_manager
from exactcalc import error as E
from exactcalc.commands import Command, CommandExecutor, parse_bool, parse_variable_list
from exactcalc.MathEngine import Environment, PrecisionPolicy
from exactcalc.Rational import Rational


@pytest.fixture
def executor(environment, precision):
    return CommandExecutor(environment, precision, persist=False)


def test_is_command():
    assert CommandExecutor.is_command("/help")
    assert CommandExecutor.is_command("   /vars")
    assert not CommandExecutor.is_command("1 / 2")


def test_parse_bool():
    assert parse_bool("T") is True
    assert parse_bool(" false ") is False
    with pytest.raises(E.CommandError):
        parse_bool("yes")


def test_parse_variable_list():
    assert parse_variable_list("$a $b_2") == ["a", "b_2"]
    assert parse_variable_list("") == []
    for bad in ("a", "$a +", "$a #"):
        with pytest.raises(E.CommandError):
            parse_variable_list(bad)


def test_help_lists_commands(executor):
    text = executor.execute("/help")
    for name in ("help", "precision", "fractional", "commas", "radix", "converttoradix", "upper",
                 "vars", "purgevar", "reloadvar"):
        assert f"/{name}" in text


def test_help_for_one_command(executor):
    text = executor.execute("/h /p")
    assert "Usage: /precision [digits]" in text
    assert "Alias: /p" in text


def test_precision(executor, precision):
    assert executor.execute("/precision") == "20"
    assert executor.execute("/precision 30") == "Done"
    assert precision.digits == 30
    assert executor.execute("/p   8") == "Done"
    assert executor.execute("/p") == "8"


def test_bad_precision(executor, precision):
    with pytest.raises(E.CommandError):
        executor.execute("/precision abc")
    with pytest.raises(E.ConfigurationError):
        executor.execute("/precision 0")
    assert precision.digits == 20


def test_toggles(executor):
    assert executor.execute("/fractional") == "false"
    assert executor.execute("/f true") == "Done"
    assert executor.execute("/fractional") == "true"
    assert executor.settings["fractions"] is True
    assert executor.execute("/commas t") == "Done"
    assert executor.settings["commas"] is True
    with pytest.raises(E.CommandError):
        executor.execute("/commas maybe")


def test_vars(executor, environment):
    assert executor.execute("/vars") == "No variables set"
    environment.set("y", Rational(3))
    environment.set("x", Rational(1, 2))
    assert executor.execute("/vars") == "$x = 1/2\n$y = 3"


def test_purgevar(executor, environment):
    environment.set("x", Rational(1))
    environment.set("y", Rational(2))
    environment.set("z", Rational(3))
    assert executor.execute("/purgevar $x $z") == "Done"
    assert environment.names() == ["y"]
    with pytest.raises(E.CommandError):
        executor.execute("/purgevar")
    with pytest.raises(E.CommandError):
        executor.execute("/purgevar y")


def test_unknown_command(executor):
    with pytest.raises(E.CommandError) as excinfo:
        executor.execute("/nope")
    assert excinfo.value.code == "6002"
    with pytest.raises(E.CommandError):
        executor.execute("/")


def test_duplicate_registration(executor):
    with pytest.raises(ValueError):
        executor.register(Command("vars", lambda args: "", "/vars", "again"))
    with pytest.raises(ValueError):
        executor.register(Command("other", lambda args: "", "/other", "clash", aliases=("p",)))


def test_custom_command(executor):
    executor.register(Command("echo", lambda args: args, "/echo text", "Repeats text", aliases=("e",)))
    assert executor.execute("/e hello  world") == "hello  world"


def test_settings_are_persisted():
    executor = CommandExecutor(Environment(), PrecisionPolicy(), persist=True)
    executor.execute("/precision 7")
    executor.execute("/fractional true")
    assert config_manager.load_setting_value("precision") == 7
    assert config_manager.load_setting_value("fractions") is True


def test_purge_is_persisted():
    environment = Environment()
    environment.set("x", Rational(1))
    environment.set("y", Rational(2))
    config_manager.save_variables(environment)

    executor = CommandExecutor(environment, PrecisionPolicy(), persist=True)
    executor.execute("/purgevar $x")
    assert config_manager.load_variables().names() == ["y"]


def test_radix(executor):
    assert executor.execute("/radix") == "10"
    assert executor.execute("/radix 16") == "Done"
    assert executor.settings["radix"] == 16
    assert executor.execute("/radix") == "16"
    for bad, message in (("1", "less than 2"), ("17", "greater than 16"), ("ten", "integer")):
        with pytest.raises(E.CommandError) as excinfo:
            executor.execute(f"/radix {bad}")
        assert message in excinfo.value.message
    assert executor.settings["radix"] == 16


def test_converttoradix(executor):
    assert executor.execute("/converttoradix") == "None"
    assert executor.execute("/converttoradix 2") == "Done"
    assert executor.execute("/converttoradix") == "2"
    assert executor.execute("/converttoradix NONE") == "Done"
    assert executor.settings["convert_to_radix"] is None
    with pytest.raises(E.CommandError):
        executor.execute("/converttoradix 0")


def test_upper(executor):
    assert executor.execute("/upper") == "false"
    assert executor.execute("/upper t") == "Done"
    assert executor.settings["upper"] is True
    assert "Usage: /upper [true|false]" in executor.execute("/help upper")


def test_settings_change_in_place(environment, precision):
    settings = dict(config_manager.DEFAULT_SETTINGS)
    executor = CommandExecutor(environment, precision, settings, persist=True)
    executor.execute("/radix 8")
    assert settings["radix"] == 8
    assert config_manager.load_setting_value("radix") == 8


def test_reloadvar():
    saved = Environment()
    saved.set("x", Rational(5, 2))
    config_manager.save_variables(saved)

    environment = Environment()
    environment.set("x", Rational(9))
    executor = CommandExecutor(environment, PrecisionPolicy(), persist=True)
    assert executor.execute("/reloadvar $x $missing $x") == "Set $x to 5/2\n$missing unchanged"
    assert environment.get("x") == Rational(5, 2)
    assert "missing" not in environment
    with pytest.raises(E.CommandError):
        executor.execute("/reloadvar")


def test_reloadvar_needs_saved_variables(executor, environment):
    with pytest.raises(E.CommandError) as excinfo:
        executor.execute("/reloadvar $x")
    assert "unavailable" in excinfo.value.message
