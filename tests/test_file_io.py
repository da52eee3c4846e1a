"""Tests for tolerant library reads and atomic writes."""

from __future__ import annotations

from pathlib import Path

import pytest

import agentshelf.file_io as file_io

pytestmark = pytest.mark.unit


def test_replace_file_with_retry_retries_permission_denied_then_succeeds(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    src = tmp_path / "src.md"
    dst = tmp_path / "dst.md"
    src.write_text("new-content", encoding="utf-8")
    dst.write_text("old-content", encoding="utf-8")

    attempts = {"count": 0}
    original_replace = Path.replace

    def flaky_replace(self: Path, target: Path) -> Path:
        if self == src and Path(target) == dst and attempts["count"] < 2:
            attempts["count"] += 1
            raise PermissionError("file locked")
        return original_replace(self, target)

    monkeypatch.setattr(Path, "replace", flaky_replace)
    monkeypatch.setattr(file_io.time, "sleep", lambda _seconds: None)

    file_io._replace_file_with_retry(src, dst)

    assert attempts["count"] == 2
    assert dst.read_text(encoding="utf-8") == "new-content"


def test_replace_file_with_retry_raises_non_permission_oserror(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    src = tmp_path / "src.md"
    src.write_text("x", encoding="utf-8")

    def fail_replace(_self: Path, _target: Path) -> Path:
        raise OSError(5, "io error")

    monkeypatch.setattr(Path, "replace", fail_replace)

    with pytest.raises(OSError) as exc_info:
        file_io._replace_file_with_retry(src, tmp_path / "dst.md")

    assert exc_info.value.errno == 5


def test_atomic_write_text_creates_parents_and_leaves_no_temp_files(tmp_path: Path) -> None:
    path = tmp_path / "out" / "catalog.json"

    file_io.atomic_write_text(path, "first")
    file_io.atomic_write_text(path, "second")

    assert path.read_text(encoding="utf-8") == "second"
    assert list(path.parent.glob("*.tmp")) == []


def test_atomic_write_text_cleans_temp_file_when_replace_raises(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    path = tmp_path / "library" / "agents.md"

    def busy(_src: Path, _dst: Path) -> None:
        raise PermissionError("busy")

    monkeypatch.setattr(file_io, "_replace_file_with_retry", busy)

    with pytest.raises(PermissionError):
        file_io.atomic_write_text(path, "content")

    assert list(path.parent.glob(f"{path.name}.*.tmp")) == []


def test_read_text_strips_bom_and_reports_utf8(tmp_path: Path) -> None:
    target = tmp_path / "bom.md"
    target.write_bytes(b"\xef\xbb\xbfhello")

    result = file_io.read_text(target)

    assert result.text == "hello"
    assert result.decoder == "utf-8"
    assert result.used_fallback is False


def test_read_text_falls_back_to_cp1252_without_rewriting(tmp_path: Path) -> None:
    target = tmp_path / "legacy.md"
    payload = b"alpha\x97omega"
    target.write_bytes(payload)

    result = file_io.read_text(target)

    assert result.text == "alpha\u2014omega"
    assert result.decoder == "cp1252"
    assert result.used_fallback is True
    assert result.used_replacement is False
    assert target.read_bytes() == payload


def test_read_text_uses_replacement_when_all_fallbacks_fail(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    target = tmp_path / "bad.md"
    target.write_bytes(b"\xff")

    class _RawBytes:
        def decode(self, encoding: str, errors: str = "strict") -> str:
            if encoding in {"utf-8-sig", "cp1252", "latin-1"}:
                raise UnicodeDecodeError(encoding, b"\xff", 0, 1, "bad sequence")
            if encoding == "utf-8" and errors == "replace":
                return "x\ufffdy"
            raise AssertionError(f"unexpected decode call: {encoding=} {errors=}")

    monkeypatch.setattr(Path, "read_bytes", lambda _self: _RawBytes())

    result = file_io.read_text(target)

    assert result.decoder == "utf-8-replace"
    assert result.used_replacement is True
    assert result.text == "x\ufffdy"
