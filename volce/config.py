# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Credential and client configuration.

Configuration comes from one of two sources:

* A YAML file at ``$XDG_CONFIG_HOME/volce/volce.yaml`` (typically
  ``~/.config/volce/volce.yaml``).  ``!env VAR`` tags resolve values from
  environment variables, so the file need not contain secrets.
* Environment variables ``VOLCENGINE_ACCESS_KEY`` and
  ``VOLCENGINE_SECRET_KEY`` (required) plus ``VOLCENGINE_REGION``,
  ``VOLCENGINE_ENDPOINT`` and ``VOLCENGINE_TIMEOUT`` (optional).

``.env`` files are loaded before either source is read.  Loaded secret
keys are registered with the logging ``SecretFilter``.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from platformdirs import user_config_path

from volce.dotenv_loader import load_dotenv_once
from volce.errors import ConfigurationError
from volce.logging import SecretFilter


logger = logging.getLogger(__name__)

#: Application name for XDG path resolution.
_APP_NAME = "volce"

DEFAULT_REGION = "cn-north-1"
DEFAULT_ENDPOINT = "https://visual.volcengineapi.com"
DEFAULT_TIMEOUT_SECONDS = 30.0

ENV_ACCESS_KEY = "VOLCENGINE_ACCESS_KEY"
ENV_SECRET_KEY = "VOLCENGINE_SECRET_KEY"
ENV_REGION = "VOLCENGINE_REGION"
ENV_ENDPOINT = "VOLCENGINE_ENDPOINT"
ENV_TIMEOUT = "VOLCENGINE_TIMEOUT"


def get_config_path() -> Path:
    """Return the default config file path (XDG)."""
    return user_config_path(_APP_NAME) / "volce.yaml"


def get_dotenv_path() -> Path:
    """Return the ``.env`` path inside the XDG config directory."""
    return user_config_path(_APP_NAME) / ".env"


# ---------------------------------------------------------------------------
# YAML tag placeholders
# ---------------------------------------------------------------------------


class _EnvVar:
    """Placeholder for an unresolved ``!env VAR_NAME`` tag."""

    def __init__(self, var_name: str) -> None:
        self.var_name = var_name


def _env_constructor(loader: yaml.SafeLoader, node: yaml.Node) -> _EnvVar:
    """Handle ``!env VAR_NAME`` in YAML."""
    value = loader.construct_scalar(node)
    return _EnvVar(str(value))


def _make_loader() -> type[yaml.SafeLoader]:
    """Create a YAML loader that understands ``!env``."""

    class EnvLoader(yaml.SafeLoader):
        pass

    EnvLoader.add_constructor("!env", _env_constructor)
    return EnvLoader


# ---------------------------------------------------------------------------
# Value resolution
# ---------------------------------------------------------------------------


def _raw_resolve(value: object) -> str | None:
    """Resolve an ``_EnvVar`` to its value, or stringify literals.

    Returns None if the value is None, the env var is not set, or the
    value is an empty string.
    """
    if isinstance(value, _EnvVar):
        value = os.environ.get(value.var_name)
    if value is None:
        return None
    resolved = str(value).strip()
    return resolved or None


def _resolve_str(value: object, *, field: str, default: str | None) -> str:
    resolved = _raw_resolve(value)
    if resolved is not None:
        return resolved
    if default is not None:
        return default
    if isinstance(value, _EnvVar):
        raise ConfigurationError(
            f"Required config '{field}': environment variable "
            f"'{value.var_name}' is not set"
        )
    raise ConfigurationError(f"Required config '{field}' is missing")


def _resolve_timeout(value: object) -> float:
    resolved = _raw_resolve(value)
    if resolved is None:
        return DEFAULT_TIMEOUT_SECONDS
    try:
        return float(resolved)
    except ValueError:
        raise ConfigurationError(
            f"Config 'timeout' must be a number: {resolved!r}"
        ) from None


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class VolceConfig:
    """Credentials and client settings.

    Attributes:
        access_key: Access key ID.
        secret_key: Secret access key.  Excluded from ``repr``.
        region: Region identifier used in the credential scope.
        endpoint: Service endpoint URL.
        timeout: Request timeout in seconds.
    """

    access_key: str
    secret_key: str
    region: str = DEFAULT_REGION
    endpoint: str = DEFAULT_ENDPOINT
    timeout: float = DEFAULT_TIMEOUT_SECONDS

    def __post_init__(self) -> None:
        """Validate configuration.

        Raises:
            ConfigurationError: If configuration is invalid.
        """
        if not self.access_key:
            raise ConfigurationError("Access key must not be empty")
        if not self.secret_key:
            raise ConfigurationError("Secret key must not be empty")
        if self.timeout <= 0:
            raise ConfigurationError(
                f"Timeout must be > 0s: {self.timeout}"
            )
        SecretFilter.register_secret(self.secret_key)

    def __repr__(self) -> str:
        return (
            f"VolceConfig(access_key={self.access_key!r}, "
            f"secret_key='***', region={self.region!r}, "
            f"endpoint={self.endpoint!r}, timeout={self.timeout!r})"
        )

    @classmethod
    def from_env(cls) -> "VolceConfig":
        """Load configuration from environment variables.

        Raises:
            ConfigurationError: If a required variable is not set.
        """
        load_dotenv_once()
        return cls._from_raw(
            {
                "access_key": _EnvVar(ENV_ACCESS_KEY),
                "secret_key": _EnvVar(ENV_SECRET_KEY),
                "region": _EnvVar(ENV_REGION),
                "endpoint": _EnvVar(ENV_ENDPOINT),
                "timeout": _EnvVar(ENV_TIMEOUT),
            }
        )

    @classmethod
    def from_yaml(cls, config_path: Path | None = None) -> "VolceConfig":
        """Load configuration from a YAML file.

        Args:
            config_path: Path to YAML config file.  Defaults to
                ``~/.config/volce/volce.yaml`` (XDG).

        Raises:
            ConfigurationError: If the file is missing, malformed, or
                required values are absent.
        """
        load_dotenv_once()

        if config_path is None:
            config_path = get_config_path()

        if not config_path.exists():
            raise ConfigurationError(f"Config file not found: {config_path}")

        try:
            with open(config_path) as f:
                raw = yaml.load(f, Loader=_make_loader())
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Cannot parse config file {config_path}: {e}"
            ) from e

        if not isinstance(raw, dict):
            raise ConfigurationError(
                f"Config file must be a YAML mapping: {config_path}"
            )

        logger.debug("Loaded config from %s", config_path)
        return cls._from_raw(raw)

    @classmethod
    def _from_raw(cls, raw: dict[str, Any]) -> "VolceConfig":
        """Build config from parsed (but unresolved) values."""
        return cls(
            access_key=_resolve_str(
                raw.get("access_key"), field="access_key", default=None
            ),
            secret_key=_resolve_str(
                raw.get("secret_key"), field="secret_key", default=None
            ),
            region=_resolve_str(
                raw.get("region"), field="region", default=DEFAULT_REGION
            ),
            endpoint=_resolve_str(
                raw.get("endpoint"), field="endpoint", default=DEFAULT_ENDPOINT
            ),
            timeout=_resolve_timeout(raw.get("timeout")),
        )


def load(config_path: Path | None = None) -> VolceConfig:
    """Load configuration from the YAML file if present, else the environment.

    Args:
        config_path: Explicit config file.  When given, it must exist.

    Returns:
        VolceConfig instance.
    """
    if config_path is not None:
        return VolceConfig.from_yaml(config_path)
    default_path = get_config_path()
    if default_path.exists():
        return VolceConfig.from_yaml(default_path)
    return VolceConfig.from_env()


#: Stub configuration template written by ``volce init``.
STUB_CONFIG = """\
# volce configuration
#
# Values tagged with !env are read from the environment (or from a .env
# file next to this one).

access_key: !env VOLCENGINE_ACCESS_KEY
secret_key: !env VOLCENGINE_SECRET_KEY

# region: cn-north-1
# endpoint: https://visual.volcengineapi.com
# timeout: 30
"""
