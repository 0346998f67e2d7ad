import logging
from pathlib import Path
from typing import Any

import pytest
import yaml
from click.testing import CliRunner


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture(autouse=True)
def _restore_ctxgen_log_level():
    """The CLI sets the ctxgen logger level; keep it from leaking across tests."""
    ctxgen_logger = logging.getLogger("ctxgen")
    level = ctxgen_logger.level
    yield
    ctxgen_logger.setLevel(level)


@pytest.fixture
def project(runner: CliRunner, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Run inside an isolated project directory with an empty home."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    with runner.isolated_filesystem(temp_dir=tmp_path) as root:
        yield Path(root)


@pytest.fixture
def write_config(project: Path):
    """Write .ctxgen/config.yml with the given providers and extra keys."""

    def _write(providers: list[dict[str, Any]], **extra: Any) -> Path:
        data: dict[str, Any] = {"providers": providers, "logs_dir": "logs"}
        data.update(extra)
        path = project / ".ctxgen" / "config.yml"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(yaml.safe_dump(data), encoding="utf-8")
        return path

    return _write
