# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Volcengine credentials from ``.env`` files.

``VOLCENGINE_*`` variables may live in a ``.env`` file next to
``volce.yaml`` or in the directory the CLI is run from.  Both are merged
into ``os.environ`` the first time configuration is loaded.  A variable
that is already set always wins, so the shell overrides the config
directory, which in turn overrides the working directory.
"""

import logging
from pathlib import Path

from dotenv import load_dotenv


logger = logging.getLogger(__name__)

_loaded_paths: list[Path] | None = None


def dotenv_candidates() -> list[Path]:
    """Return the ``.env`` locations in precedence order."""
    from volce.config import get_dotenv_path

    return [get_dotenv_path(), Path.cwd() / ".env"]


def load_dotenv_once() -> list[Path]:
    """Merge the existing ``.env`` candidates into the environment.

    Only the first call reads files.

    Returns:
        Files that were loaded, in load order.
    """
    global _loaded_paths
    if _loaded_paths is not None:
        return _loaded_paths

    _loaded_paths = []
    for env_path in dotenv_candidates():
        if not env_path.is_file():
            continue
        load_dotenv(env_path, override=False)
        _loaded_paths.append(env_path)
        logger.debug("Credentials env file: %s", env_path)
    return _loaded_paths


def reset_dotenv_state() -> None:
    """Forget earlier loads so the next call reads files again."""
    global _loaded_paths
    _loaded_paths = None
