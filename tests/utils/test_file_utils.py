from __future__ import annotations

from pathlib import Path

import pytest

from utils import file_utils
from utils.file_utils import FileMissingError, FilePermissionError, FileUtils, InvalidFileTypeError


def test_resolve_path_expands_variables_and_home(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("TRANSJUDGE_ENV", "prod")

    resolved: Path = FileUtils.resolve_path("~/.cache/$TRANSJUDGE_ENV/models")

    assert resolved == (tmp_path / ".cache" / "prod" / "models").resolve()


def test_resolve_path_relative_to_cwd(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)

    assert FileUtils.resolve_path("models") == (tmp_path / "models").resolve()


def test_resolve_path_strict_missing(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        FileUtils.resolve_path(tmp_path / "absent", strict=True)


def test_contains_any(tmp_path: Path) -> None:
    (tmp_path / "model-00001.safetensors").write_bytes(b"\0")

    assert FileUtils.contains_any(tmp_path, ["*.bin", "*.safetensors"]) is True
    assert FileUtils.contains_any(tmp_path, ["*.bin"]) is False
    assert FileUtils.contains_any(tmp_path / "absent", ["*"]) is False


def test_remove_tree(tmp_path: Path) -> None:
    target: Path = tmp_path / "models" / "org"
    (target / "snapshots").mkdir(parents=True)
    (target / "snapshots" / "config.json").write_text("{}", encoding="utf-8")

    FileUtils.remove_tree(target)

    assert not target.exists()


def test_remove_tree_rejects_missing_and_files(tmp_path: Path) -> None:
    file_path: Path = tmp_path / "weights.bin"
    file_path.write_bytes(b"\0")

    with pytest.raises(FileMissingError):
        FileUtils.remove_tree(tmp_path / "absent")
    with pytest.raises(InvalidFileTypeError):
        FileUtils.remove_tree(file_path)


def test_remove_tree_rejects_symlink(tmp_path: Path) -> None:
    real: Path = tmp_path / "real"
    real.mkdir()
    link: Path = tmp_path / "link"
    link.symlink_to(real, target_is_directory=True)

    with pytest.raises(InvalidFileTypeError):
        FileUtils.remove_tree(link)
    assert real.exists()


def test_remove_tree_reports_permission_error(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    target: Path = tmp_path / "locked"
    target.mkdir()

    def deny(path: Path) -> None:
        msg = f"Permission denied: '{path}'"
        raise PermissionError(msg)

    monkeypatch.setattr(file_utils.shutil, "rmtree", deny)

    with pytest.raises(FilePermissionError, match="Insufficient permissions") as exc_info:
        FileUtils.remove_tree(target)
    assert isinstance(exc_info.value.__cause__, PermissionError)
    assert target.exists()
