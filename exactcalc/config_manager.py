# config_manager.py
"""
Settings and saved variables, both stored as JSON in the data directory.

The data directory is $EXACTCALC_HOME, or ~/.exactcalc when unset:
- config.json     user settings (missing keys fall back to DEFAULT_SETTINGS)
- variables.json  {"name": "numerator/denominator"}, lossless for Rationals
"""

import json
import logging
import os
from pathlib import Path

from . import error as E
from . import Parser
from .MathEngine import Environment, PrecisionPolicy
from .Rational import Rational, validate_radix

logger = logging.getLogger(__name__)

ui_strings = Path(__file__).resolve().parent / "ui_strings.json"

DEFAULT_SETTINGS = {
    "precision": 20,
    "fractions": False,
    "mixed_fractions": False,
    "commas": False,
    "radix": 10,
    "convert_to_radix": None,
    "upper": False,
    "darkmode": False,
    "after_paste_enter": False,
    "persist_variables": True,
}


def data_dir():
    return Path(os.environ.get("EXACTCALC_HOME") or Path.home() / ".exactcalc")


def config_json():
    return data_dir() / "config.json"


def variables_json():
    return data_dir() / "variables.json"


def _read_json(path):
    try:
        with open(path, 'r', encoding='utf-8') as f:
            content = json.load(f)
    except FileNotFoundError:
        return {}
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("Could not read %s: %s", path, e)
        return {}
    if not isinstance(content, dict):
        logger.warning("Ignoring %s: expected a JSON object", path)
        return {}
    return content


def _write_json(path, content):
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    with open(tmp_path, 'w', encoding='utf-8') as f:
        json.dump(content, f, indent=4)
    os.replace(tmp_path, path)


# -----------------------------
# Settings
# -----------------------------

def _check_radix_settings(settings_dict):
    """Fall back to the defaults for saved radix settings that are out of range."""
    for key in ("radix", "convert_to_radix"):
        value = settings_dict[key]
        if value is None and key == "convert_to_radix":
            continue
        try:
            validate_radix(value)
        except E.ConfigurationError as e:
            logger.warning("Ignoring saved %s: %s", key, e)
            settings_dict[key] = DEFAULT_SETTINGS[key]


def load_setting_value(key_value):
    """Return one setting, or the whole dict for "all". Unknown keys give None."""
    settings_dict = dict(DEFAULT_SETTINGS)
    settings_dict.update(_read_json(config_json()))
    _check_radix_settings(settings_dict)

    if key_value == "all":
        return settings_dict
    else:
        return settings_dict.get(key_value)


def load_setting_description(key_value):
    settings_dict = _read_json(ui_strings)

    if key_value == "all":
        return settings_dict
    else:
        return settings_dict.get(key_value)


def save_setting(settings_dict):
    """Write settings to config.json. Returns the saved dict, or {} on failure."""
    try:
        _write_json(config_json(), settings_dict)
        return settings_dict
    except (OSError, TypeError) as e:
        logger.error("Settings could not be saved: %s", e)
        return {}


def update_setting(key_value, value):
    all_settings = load_setting_value("all")
    all_settings[key_value] = value
    if save_setting(all_settings) == {}:
        raise E.ConfigurationError(f"Setting '{key_value}' could not be saved", code="4501")
    return all_settings


def precision_policy_from_settings(settings_dict=None):
    """Build a PrecisionPolicy from the saved precision, falling back to the default."""
    settings_dict = settings_dict or load_setting_value("all")
    try:
        return PrecisionPolicy(settings_dict.get("precision", DEFAULT_SETTINGS["precision"]))
    except E.ConfigurationError as e:
        logger.warning("Ignoring saved precision: %s", e)
        return PrecisionPolicy()


# -----------------------------
# Saved variables
# -----------------------------

def load_variables():
    """Restore the saved Environment. Unreadable entries are skipped."""
    environment = Environment()
    for name, pair in _read_json(variables_json()).items():
        if not name or not all(Parser.is_identifier_char(char) for char in name):
            logger.warning("Skipping saved variable with invalid name %r", name)
            continue
        try:
            environment.set(name, Rational.from_pair(str(pair)))
        except E.MathError as e:
            logger.warning("Skipping saved variable $%s: %s", name, e)
    return environment


def save_variables(environment):
    try:
        _write_json(variables_json(), {name: value.to_pair() for name, value in environment.items()})
    except OSError as e:
        raise E.ConfigurationError(f"Variables could not be saved: {e}", code="5002")
