"""Client configuration.

Endpoint resolution order:

1. an explicit URL (anything containing ``/``),
2. a name looked up in the ``endpoints`` mapping passed by the caller,
3. the ``endpoint`` key of the TOML config files.

Config files are read from ``/etc/vke.conf``, ``~/.vke.conf`` and
``./vke.conf`` and merged in that order, later files overriding earlier
ones::

    [default]
    endpoint = "vke"

    [vke]
    application_key = "my-key"
    application_secret = "my-secret"
    fallback_url = "https://ca.vke.example.net"
"""

from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Any

from vke.errors import ConfigurationError

RawConfig = dict[str, Any]

DEFAULT_TIMEOUT = 180.0

SYSTEM_CONFIG_PATH = Path("/etc/vke.conf")
USER_CONFIG_NAME = ".vke.conf"
LOCAL_CONFIG_PATH = Path("vke.conf")


class AuthMode(Enum):
    SIGNED = "signed"
    BEARER = "bearer"
    UNAUTHENTICATED = "unauthenticated"


def default_config_paths() -> tuple[Path, ...]:
    return (SYSTEM_CONFIG_PATH, Path.home() / USER_CONFIG_NAME, LOCAL_CONFIG_PATH)


def default_endpoints() -> dict[str, str]:
    """Named endpoints derived from the environment."""
    endpoints = {}
    if url := os.environ.get("VKE_URL"):
        endpoints["vke"] = url
    return endpoints


def _deep_merge(base: RawConfig, override: RawConfig) -> RawConfig:
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _read_toml(path: Path) -> RawConfig:
    if not path.is_file():
        return {}
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"invalid configuration file {path}: {e}") from e


def load_config(paths: Sequence[Path] | None = None) -> RawConfig:
    merged: RawConfig = {}
    for path in paths if paths is not None else default_config_paths():
        merged = _deep_merge(merged, _read_toml(path))
    merged.setdefault("default", {})
    return merged


@dataclass(frozen=True, slots=True)
class ClientConfig:
    """Resolved, immutable client settings.

    Build it with :meth:`resolve` (or :meth:`from_env`) rather than directly,
    so missing endpoints and credentials fail before any request is made.
    """

    endpoint: str
    auth_mode: AuthMode = AuthMode.SIGNED
    app_key: str = ""
    app_secret: str = ""
    token: str = ""
    timeout: float = DEFAULT_TIMEOUT
    fallback_endpoint: str | None = None

    def __post_init__(self) -> None:
        if not self.endpoint:
            raise ConfigurationError("endpoint must not be empty")
        match self.auth_mode:
            case AuthMode.SIGNED:
                if not self.app_key:
                    raise ConfigurationError(
                        "missing application key, please check your configuration "
                        "or consult the documentation to create one"
                    )
                if not self.app_secret:
                    raise ConfigurationError(
                        "missing application secret, please check your configuration "
                        "or consult the documentation to create one"
                    )
            case AuthMode.BEARER:
                if not self.token:
                    raise ConfigurationError("missing bearer token for token authentication")
            case AuthMode.UNAUTHENTICATED:
                pass
        if self.timeout <= 0:
            raise ConfigurationError(f"timeout must be positive, got {self.timeout}")

    @classmethod
    def resolve(
        cls,
        endpoint: str = "",
        *,
        app_key: str = "",
        app_secret: str = "",
        token: str = "",
        auth_mode: AuthMode | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        fallback_endpoint: str | None = None,
        endpoints: Mapping[str, str] | None = None,
        config_paths: Sequence[Path] | None = None,
    ) -> ClientConfig:
        """Resolve an endpoint name or URL and credentials into a config.

        Values passed explicitly win over the config files. When ``auth_mode``
        is omitted it is ``BEARER`` if a token is given, ``SIGNED`` otherwise.
        """
        endpoints = endpoints or {}
        file_cfg = load_config(config_paths)

        name = endpoint or file_cfg["default"].get("endpoint", "")
        section: RawConfig = file_cfg.get(name, {}) if name and "/" not in name else {}

        if "/" in name:
            url = name
        else:
            url = endpoints.get(name, "") or section.get("url", "")
        if not url:
            raise ConfigurationError(
                f"unknown endpoint '{name}', consider checking 'endpoints' list or using an URL"
            )

        mode = auth_mode or (AuthMode.BEARER if token else AuthMode.SIGNED)
        return cls(
            endpoint=url.rstrip("/"),
            auth_mode=mode,
            app_key=app_key or section.get("application_key", ""),
            app_secret=app_secret or section.get("application_secret", ""),
            token=token,
            timeout=timeout,
            fallback_endpoint=fallback_endpoint or section.get("fallback_url") or None,
        )

    @classmethod
    def from_env(cls, *, config_paths: Sequence[Path] | None = None) -> ClientConfig:
        """Resolve everything from ``VKE_*`` environment variables and config files."""
        return cls.resolve(
            os.environ.get("VKE_ENDPOINT", "vke"),
            app_key=os.environ.get("VKE_APPLICATION_KEY", ""),
            app_secret=os.environ.get("VKE_APPLICATION_SECRET", ""),
            fallback_endpoint=os.environ.get("VKE_FALLBACK_URL") or None,
            endpoints=default_endpoints(),
            config_paths=config_paths,
        )

    def for_fallback(self) -> ClientConfig:
        """Config for the one-shot regional failover client.

        The fallback config has no fallback of its own, so a failover call
        can never hop again.
        """
        if not self.fallback_endpoint:
            raise ConfigurationError("no fallback endpoint configured")
        return replace(self, endpoint=self.fallback_endpoint.rstrip("/"), fallback_endpoint=None)


__all__ = [
    "AuthMode",
    "ClientConfig",
    "DEFAULT_TIMEOUT",
    "default_config_paths",
    "default_endpoints",
    "load_config",
]
