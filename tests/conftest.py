"""Global test fixtures and configuration."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from hunksmith.config.config_loader import ConfigLoader


@pytest.fixture(autouse=True)
def reset_config_loader() -> Iterator[None]:
	"""Give every test a fresh configuration loader."""
	ConfigLoader.reset_instance()
	yield
	ConfigLoader.reset_instance()


@pytest.fixture(autouse=True)
def isolated_config_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
	"""Keep tests away from the user's configuration files."""
	config_home = tmp_path / "xdg"
	config_home.mkdir()
	monkeypatch.setattr("hunksmith.config.config_loader.xdg_config_home", str(config_home))
	monkeypatch.chdir(tmp_path)
	return config_home
