# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Shared pytest fixtures used across multiple test packages."""

import os
from collections.abc import Iterator
from pathlib import Path

import pytest

from volce.dotenv_loader import reset_dotenv_state
from volce.logging import SecretFilter


_VOLCE_ENV_VARS = (
    "VOLCENGINE_ACCESS_KEY",
    "VOLCENGINE_SECRET_KEY",
    "VOLCENGINE_REGION",
    "VOLCENGINE_ENDPOINT",
    "VOLCENGINE_TIMEOUT",
)


@pytest.fixture(autouse=True)
def _isolate_secrets() -> Iterator[None]:
    """Clear process-wide secret registrations between tests."""
    SecretFilter.clear_secrets()
    yield
    SecretFilter.clear_secrets()


@pytest.fixture
def clean_env() -> Iterator[None]:
    """Remove volce environment variables and restore the environment after.

    Covers variables set behind monkeypatch's back by ``load_dotenv``.
    """
    saved = os.environ.copy()
    for name in _VOLCE_ENV_VARS:
        os.environ.pop(name, None)
    yield
    os.environ.clear()
    os.environ.update(saved)


@pytest.fixture
def config_home(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, clean_env: None
) -> Iterator[Path]:
    """Point XDG config and the working directory at empty temp dirs.

    Returns:
        The ``volce`` config directory (not created).
    """
    xdg = tmp_path / "xdg"
    cwd = tmp_path / "cwd"
    xdg.mkdir()
    cwd.mkdir()
    monkeypatch.setattr(
        "volce.config.user_config_path", lambda app_name: xdg / app_name
    )
    monkeypatch.chdir(cwd)
    reset_dotenv_state()
    yield xdg / "volce"
    reset_dotenv_state()
