"""Loader for transjudge.ini.

Values are parsed with ``ast.literal_eval``, coerced to the types declared on the ``Config`` sections,
then range-checked. Every problem surfaces as a ``ConfigLoaderError`` subclass.
"""

from __future__ import annotations

import ast
import configparser
from configparser import ConfigParser
from dataclasses import fields
from pathlib import Path
from typing import TYPE_CHECKING, Any

from models.config_models import Config
from models.translation_models import TargetLanguage
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging
    from collections.abc import Callable
    from dataclasses import Field as DataclassField
else:
    from dataclasses import Field as DataclassField

__all__: list[str] = [
    "ALLOWED_TRANSLATION_ENGINES",
    "Config",
    "ConfigFileNotFoundError",
    "ConfigFormatError",
    "ConfigLoader",
    "ConfigLoaderError",
    "ConfigTypeError",
    "ConfigValueError",
]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

ALLOWED_TRANSLATION_ENGINES: list[str] = ["local_model", "foundation_model", "deepl"]


class ConfigLoaderError(Exception):
    """An error occurred while processing the configuration file."""


class ConfigFileNotFoundError(ConfigLoaderError):
    """The specified configuration file does not exist."""


class ConfigFormatError(ConfigLoaderError):
    """The configuration file is not formatted correctly."""


class ConfigValueError(ConfigFormatError):
    """The configuration file contains an invalid value."""


class ConfigTypeError(ConfigFormatError):
    """The configuration file contains an invalid type."""


class ConfigLoader:
    """Reads transjudge.ini into a ``Config`` instance.

    Keys missing from the INI file keep the defaults declared in ``models.config_models``.

    Args:
        config_filename (str): INI file name to load.
        script_name (str): Executing script name, used in error messaging.
        **args: Command-line overrides. ``debug`` (bool) and ``lang`` (str) are recognised.

    Raises:
        ConfigFileNotFoundError: If the configuration file does not exist.
        ConfigFormatError: If the file cannot be parsed or contains invalid values/types.
    """

    def __init__(
        self,
        *,
        config_filename: str,
        script_name: str,
        **args,
    ) -> None:
        config_path = Path(config_filename)
        msg: str
        if not config_path.exists():
            msg = (
                f"Configuration file '{config_filename}' not found. "
                f"Please create '{config_filename}' in the same directory as '{script_name}'."
            )
            raise ConfigFileNotFoundError(msg)

        parser: ConfigParser = ConfigParser()
        # INI keys are case-sensitive here because they map onto upper-case dataclass fields.
        parser.optionxform = str  # type: ignore[assignment]

        try:
            parser.read(config_filename, encoding="utf-8")
        except configparser.Error as err:
            msg = f"Failed to parse configuration file '{config_filename}': {err}"
            raise ConfigFormatError(msg) from None

        self.config = Config()
        self.config.GENERAL.SCRIPT_NAME = script_name
        self._convert_settings(parser)

        if args.get("debug", False):
            self.config.GENERAL.DEBUG = True
        if args.get("lang"):
            self.config.TRANSLATION.DEFAULT_LANGUAGE = args["lang"]
        self._validate_settings()

    def _convert_settings(self, parser: ConfigParser) -> None:
        """Copy every known key of every section from the parser into the Config object.

        Raises:
            ConfigFormatError: If a value cannot be parsed or coerced to the expected type.
        """
        formatter = _ConfigFormatter(self.config, parser)
        for section in fields(self.config):
            if not parser.has_section(section.name):
                logger.debug("Section '%s' not defined, using defaults", section.name)
                continue
            for key in fields(getattr(self.config, section.name)):
                if not parser.has_option(section.name, key.name):
                    logger.debug("Skipping undefined setting: '%s.%s'", section.name, key.name)
                    continue
                formatted_value: Any = formatter.apply_format(section, key)
                setattr(getattr(self.config, section.name), key.name, formatted_value)

    def _validate_settings(self) -> None:
        """Validate language, engine names and numeric ranges.

        Raises:
            ConfigFormatError: If validation fails for any setting.
        """
        self._inspect_defined_item("TRANSLATION", "ENGINE", ALLOWED_TRANSLATION_ENGINES)

        language: str = self.config.TRANSLATION.DEFAULT_LANGUAGE
        try:
            self.config.TRANSLATION.DEFAULT_LANGUAGE = TargetLanguage.from_code(language).value
        except ValueError as err:
            msg = f"Invalid value for TRANSLATION.DEFAULT_LANGUAGE: {err}"
            raise ConfigValueError(msg) from None

        self._validate_range("LOCAL_MODEL", "MAX_TOKENS", minimum=1)
        self._validate_range("LOCAL_MODEL", "TEMPERATURE", minimum=0.0, maximum=2.0)
        self._validate_range("LOCAL_MODEL", "MAX_CACHED_MODELS", minimum=1)
        self._validate_range("FOUNDATION_MODEL", "TIMEOUT", minimum=0.0)
        self._validate_range("JUDGE", "TEMPERATURE", minimum=0.0, maximum=2.0)
        self._validate_range("JUDGE", "TIMEOUT", minimum=0.0)
        self._validate_range("JUDGE", "MAX_ATTEMPTS", minimum=1)
        self._validate_range("JUDGE", "BASE_RETRY_DELAY", minimum=0.0)

        if not self.config.JUDGE.API_KEY_ENV.strip():
            msg = "JUDGE.API_KEY_ENV must name an environment variable"
            raise ConfigValueError(msg)

    def _inspect_defined_item(self, section_name: str, key_name: str, defined_list: list[str]) -> None:
        """Warn about configured values that are not among the allowed options.

        Raises:
            ConfigTypeError: If the configured value is neither list nor str.
        """
        value: str | list[str] = getattr(getattr(self.config, section_name), key_name)
        field_name: str = f"{section_name}.{key_name}"

        if isinstance(value, (list, str)):
            values: list[str] = value if isinstance(value, list) else [value]
            for val in values:
                if val not in defined_list:
                    logger.warning("Unknown value '%s' is set for '%s'", val, field_name)
            setattr(getattr(self.config, section_name), key_name, values)
        else:
            msg: str = f"Unsupported type used for '{field_name}': {type(value)}"
            raise ConfigTypeError(msg)

    def _validate_range(
        self,
        section_name: str,
        key_name: str,
        *,
        minimum: float | None = None,
        maximum: float | None = None,
    ) -> None:
        """Check that a numeric setting lies within [minimum, maximum].

        Raises:
            ConfigValueError: If the value is out of range.
        """
        value: float = getattr(getattr(self.config, section_name), key_name)
        field_name: str = f"{section_name}.{key_name}"
        if minimum is not None and value < minimum:
            msg = f"'{field_name}' must be >= {minimum}, got {value}"
            raise ConfigValueError(msg)
        if maximum is not None and value > maximum:
            msg = f"'{field_name}' must be <= {maximum}, got {value}"
            raise ConfigValueError(msg)


class _ConfigFormatter:
    """Converts INI string values to typed Python objects (bool, int, float, str, list)."""

    def __init__(self, config: Config, parser: ConfigParser) -> None:
        self.config: Config = config
        self.parser: ConfigParser = parser

    def apply_format(self, section: DataclassField[Any], key: DataclassField[Any]) -> Any:
        """Convert an INI value to the type of the field's default value.

        Raises:
            ConfigValueError: If a value cannot be coerced to the expected type.
            ConfigFormatError: If literal evaluation fails due to invalid syntax.
            ConfigTypeError: If an unexpected type is encountered during coercion.
        """
        formatters: dict[type, Callable[[DataclassField[Any], DataclassField[Any]], Any]] = {
            bool: self.parse_as_boolean,
            int: self.parse_as_integer,
            float: self.parse_as_float,
            str: self.parse_as_string,
        }

        formatter: Callable[[DataclassField[Any], DataclassField[Any]], Any] | None = formatters.get(
            type(getattr(getattr(self.config, section.name), key.name))
        )
        if formatter:
            try:
                return formatter(section, key)
            except ValueError as err:
                msg = f"Invalid value for {section.name}.{key.name}: {err}"
                raise ConfigValueError(msg) from err
            except TypeError as err:
                msg = f"Invalid value for {section.name}.{key.name}: {err}"
                raise ConfigTypeError(msg) from err

        value_str: str = self.parser[section.name][key.name]
        try:
            return ast.literal_eval(value_str)
        except ValueError as err:
            msg = f"Invalid literal for {section.name}.{key.name}: {value_str}"
            raise ConfigValueError(msg) from err
        except SyntaxError as err:
            msg = f"Invalid literal for {section.name}.{key.name}: {value_str}"
            raise ConfigFormatError(msg) from err

    def _unquote(self, section: DataclassField[Any], key: DataclassField[Any]) -> str:
        value: str = self.parser.get(section.name, key.name).strip()
        for char in ("'", '"'):
            if len(value) >= 2 and value.startswith(char) and value.endswith(char):
                return value[1:-1]
        return value

    def parse_as_string(self, section: DataclassField[Any], key: DataclassField[Any]) -> str:
        """Return the INI string with one level of surrounding quotes removed."""
        return self._unquote(section, key)

    def parse_as_float(self, section: DataclassField[Any], key: DataclassField[Any]) -> float:
        return float(self._unquote(section, key))

    def parse_as_integer(self, section: DataclassField[Any], key: DataclassField[Any]) -> int:
        return int(float(self._unquote(section, key)))

    def parse_as_boolean(self, section: DataclassField[Any], key: DataclassField[Any]) -> bool:
        return self.parser.getboolean(section.name, key.name)
