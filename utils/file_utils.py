from __future__ import annotations

import os
import shutil
from pathlib import Path

__all__: list[str] = [
    "FileMissingError",
    "FilePermissionError",
    "FileUtils",
    "FileUtilsError",
    "InvalidFileTypeError",
]


class FileUtils:
    """Utility class for path resolution and safe directory operations.

    All methods are blocking; call them through ``asyncio.to_thread`` from coroutines.
    """

    @staticmethod
    def resolve_path(path: str | Path, *, strict: bool = False) -> Path:
        """Convert a user-input path to an absolute path safely.

        Expands environment variables (e.g., $HOME, %APPDATA%), expands ~ to the home directory,
        and resolves relative paths based on the current working directory.

        Args:
            path (str | Path): The input path (e.g., "~/.cache/$APP_ENV/models").
            strict (bool): Whether to raise an exception if the path does not exist. Defaults to False.

        Returns:
            Path: The converted absolute `Path` object.
        """
        expanded: str = os.path.expandvars(str(path))
        user_expanded: Path = Path(expanded).expanduser()

        if user_expanded.is_absolute():
            return user_expanded.resolve(strict=strict)
        return (Path.cwd() / user_expanded).resolve(strict=strict)

    @staticmethod
    def contains_any(directory: Path, patterns: list[str]) -> bool:
        """Return True if ``directory`` holds at least one entry matching any of the glob patterns."""
        if not directory.is_dir():
            return False
        return any(next(directory.glob(pattern), None) is not None for pattern in patterns)

    @staticmethod
    def remove_tree(directory: Path) -> None:
        """Recursively delete a directory.

        Raises:
            FileMissingError: If the directory does not exist.
            InvalidFileTypeError: If the path is a symbolic link or a regular file.
            FilePermissionError: If there are insufficient permissions to delete it.
        """
        if not directory.exists():
            msg = f"Directory does not exist: {directory}"
            raise FileMissingError(msg)
        if directory.is_symlink() or not directory.is_dir():
            msg = f"Invalid file type (not a directory): {directory}"
            raise InvalidFileTypeError(msg)
        try:
            shutil.rmtree(directory)
        except PermissionError as err:
            msg = f"Insufficient permissions to delete the directory: {directory}"
            raise FilePermissionError(msg) from err


class FileUtilsError(Exception):
    """Custom exception for FileUtils-related errors."""


class FileMissingError(FileUtilsError):
    """Custom exception for file missing errors."""


class InvalidFileTypeError(FileUtilsError):
    """Custom exception for invalid file type errors."""


class FilePermissionError(FileUtilsError):
    """Custom exception for file permission errors."""
