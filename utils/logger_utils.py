from __future__ import annotations

import logging
import sys
import warnings
from logging import Formatter, NullHandler, StreamHandler
from logging.handlers import RotatingFileHandler
from typing import TYPE_CHECKING, ClassVar, Final, Literal, NamedTuple, Self, TextIO

if TYPE_CHECKING:
    from pathlib import Path

__all__: list[str] = ["LogLevel", "LoggerUtils"]

type LevelType = Literal[
    "NOTSET",
    "DEBUG",
    "INFO",
    "WARNING",
    "ERROR",
    "CRITICAL",
]

_LOG_FILE_SIZE: Final[int] = 2 * 1024 * 1024  # 2MB
_LOG_BACKUP_COUNT: Final[int] = 2

DEFAULT_LOG_LEVEL: Final[int] = logging.INFO
DEFAULT_NAMESPACE: Final[str] = "TransJudge"

_FILE_FORMAT: Final[str] = "%(asctime)s %(levelname)-8s %(lineno)4d %(name)-44s\t%(funcName)s\t%(message)s"
_CONSOLE_FORMAT: Final[str] = "%(levelname)s: %(message)s"
_ORIGINAL_SHOWWARNING = warnings.showwarning


class LogLevel(NamedTuple):
    """Logging level as both name and numeric value."""

    name: str
    value: int


class LoggerUtils:
    """Process-wide logging setup for TransJudge.

    The first instantiation attaches a console handler and, when a file name is given,
    a rotating file handler to the namespace root logger. Later instantiations return
    the same object without touching the handlers again.

    Module code never instantiates this class; it only calls ``LoggerUtils.get_logger(__name__)``.
    The CLI entry point performs the one-time configuration.

    Attributes:
        _LOGGER_NAMESPACE (str): Namespace prefix shared by every logger of the application.
        _configured (bool): Whether handlers have been attached.
        _instance (LoggerUtils | None): Singleton instance.
    """

    _LOGGER_NAMESPACE: ClassVar[str] = DEFAULT_NAMESPACE
    _configured: ClassVar[bool] = False
    _instance: ClassVar[Self | None] = None

    def __new__(cls, *args, **kwargs) -> Self:
        _ = args, kwargs
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(
        self,
        filename: str | Path = "",
        *,
        console_level: int = logging.WARNING,
        use_null_console: bool = False,
    ) -> None:
        """Attach handlers to the namespace root logger.

        Args:
            filename (str | Path): Absolute path of the log file. Empty disables file logging.
            console_level (int): Level of the stderr handler. The CLI lowers it to DEBUG with ``--debug``.
            use_null_console (bool): Attach a NullHandler instead of a stderr handler.
        """
        if LoggerUtils._configured:
            return

        self.root_logger: logging.Logger = logging.getLogger(self._LOGGER_NAMESPACE)
        self.root_logger.setLevel(DEFAULT_LOG_LEVEL)
        self._use_null_console: bool = bool(use_null_console) or sys.stderr is None

        self._console_logging(console_level)
        filename = str(filename)
        if filename.strip():
            self._file_logging(filename)

        warnings.showwarning = self.warning_to_log
        LoggerUtils._configured = True

    def warning_to_log(
        self,
        message: Warning | str,
        category: type[Warning],
        filename: str,
        lineno: int,
        file: TextIO | None = None,
        line: str | None = None,
    ) -> None:
        """Route ``warnings.warn`` output into the application log (``warnings.showwarning`` signature)."""
        _ = file, line
        self.root_logger.warning("%s:%d: %s: %s", filename, lineno, category.__name__, message)

    def _console_logging(self, level: int) -> None:
        if self._use_null_console:
            self.root_logger.addHandler(NullHandler())
            return

        console_handler: StreamHandler[TextIO] = StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(Formatter(_CONSOLE_FORMAT))
        self.root_logger.addHandler(console_handler)

    def _file_logging(self, filename: str) -> None:
        try:
            file_handler = RotatingFileHandler(
                filename=filename,
                maxBytes=_LOG_FILE_SIZE,
                backupCount=_LOG_BACKUP_COUNT,
                encoding="utf-8",
            )
        except (FileNotFoundError, PermissionError):
            self.root_logger.error("Cannot open log file '%s'. Logging to the file is not performed.", filename)
            return

        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(Formatter(_FILE_FORMAT))
        self.root_logger.addHandler(file_handler)

    def set_level(self, level: LevelType | str) -> None:
        """Set the namespace root level; unknown names fall back to INFO with a warning."""
        level_map: dict[str, int] = logging.getLevelNamesMapping()
        try:
            self.root_logger.setLevel(level_map[level.upper()])
        except KeyError:
            self.root_logger.setLevel(DEFAULT_LOG_LEVEL)
            self.root_logger.warning("Unknown logging level '%s'. Logging level set to 'INFO'.", level)

    def get_level(self) -> LogLevel:
        level_value: int = self.root_logger.getEffectiveLevel()
        return LogLevel(name=logging.getLevelName(level_value), value=level_value)

    @classmethod
    def reset(cls) -> None:
        """Detach handlers and forget the singleton. Used by tests that configure logging."""
        root: logging.Logger = logging.getLogger(cls._LOGGER_NAMESPACE)
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()
        warnings.showwarning = _ORIGINAL_SHOWWARNING
        cls._configured = False
        cls._instance = None

    @staticmethod
    def get_logger(name: str | None = None) -> logging.Logger:
        """Get a logger below the application namespace.

        Args:
            name (str | None): Dotted module name. None returns the namespace root logger.

        Returns:
            logging.Logger: The logger instance.
        """
        if name:
            return logging.getLogger(f"{LoggerUtils._LOGGER_NAMESPACE}.{name}")
        return logging.getLogger(LoggerUtils._LOGGER_NAMESPACE)
