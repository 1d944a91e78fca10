"""Configuration file loading and credential resolution.

A passport configuration file is JSON or YAML and deserialises into a
:class:`~passport.models.PassportConfig`. Secrets should not live in the
file itself: each strategy can name a credential *source* instead, resolved
by :func:`resolve_credential` when the :class:`~passport.Passport` is built.

* **Config path** -- explicit argument, else ``$PASSPORT_CONFIG``, else
  ``./passport.yaml``. See :func:`default_config_path`.
* **Credential sources** -- ``env:VAR_NAME`` and ``file:/path``.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import SecretStr, ValidationError

from passport.exceptions import ConfigError
from passport.models import PassportConfig, StrategyConfig, StrategySettings
from passport.providers import Provider

CONFIG_ENV_VAR = "PASSPORT_CONFIG"
_DEFAULT_CONFIG_FILENAME = "passport.yaml"


def default_config_path() -> Path:
    """Return ``$PASSPORT_CONFIG`` if set, else ``./passport.yaml``."""
    env_value = os.environ.get(CONFIG_ENV_VAR, "")
    if env_value:
        return Path(env_value).expanduser()
    return Path.cwd() / _DEFAULT_CONFIG_FILENAME


def load_config(path: Optional[str | Path] = None) -> PassportConfig:
    """Load and validate a configuration file.

    Args:
        path: File to read. Defaults to :func:`default_config_path`.

    Returns:
        The parsed :class:`~passport.models.PassportConfig`.

    Raises:
        ConfigError: If the file is missing, unreadable, not JSON/YAML, or
            does not match the schema.
    """
    file_path = Path(path).expanduser() if path is not None else default_config_path()
    if not file_path.is_file():
        raise ConfigError(f"Config file not found: {file_path}")
    try:
        content = file_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot read config file {file_path}: {exc}") from exc

    raw = _parse_content(content, file_path)
    return parse_config(raw, source=str(file_path))


def parse_config(raw: Any, source: str = "<config>") -> PassportConfig:
    """Validate an already-parsed mapping as a :class:`PassportConfig`.

    Raises:
        ConfigError: If *raw* is not a mapping or fails validation.
    """
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Invalid config at {source}: expected a mapping at the top level")
    try:
        return PassportConfig.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(f"Invalid config at {source}: {exc}") from exc


def _parse_content(content: str, file_path: Path) -> Any:
    """Parse *content* as JSON for ``.json`` files and as YAML otherwise."""
    if file_path.suffix.lower() == ".json":
        try:
            return json.loads(content)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Invalid JSON in {file_path}: {exc}") from exc
    try:
        return yaml.safe_load(content)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {file_path}: {exc}") from exc


def resolve_credential(source: str) -> str:
    """Resolve a credential from its source descriptor.

    Supported formats:
        - ``"env:VAR_NAME"`` -- reads ``os.environ["VAR_NAME"]``
        - ``"file:/path/to/file"`` -- reads file content, stripped of whitespace

    Args:
        source: The source descriptor string.

    Returns:
        The resolved credential string.

    Raises:
        ConfigError: If the source can't be resolved.
    """
    if source.startswith("env:"):
        var_name = source[4:]
        value = os.environ.get(var_name)
        if value is None:
            raise ConfigError(
                f"Environment variable '{var_name}' is not set (source: {source})"
            )
        return value

    if source.startswith("file:"):
        file_path = source[5:]
        path = Path(file_path).expanduser()
        if not path.is_file():
            raise ConfigError(f"Credential file not found: {path} (source: {source})")
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigError(f"Cannot read credential file {path}: {exc}") from exc

    raise ConfigError(f"Unknown credential source format: {source}")


def to_strategy_config(provider: Provider, settings: StrategySettings) -> StrategyConfig:
    """Resolve credential sources in *settings* into a :class:`StrategyConfig`.

    Inline values win over sources when both are given.

    Raises:
        ConfigError: If a credential is missing or its source cannot be resolved.
    """
    client_id = settings.client_id
    if client_id is None and settings.client_id_source:
        client_id = resolve_credential(settings.client_id_source)
    if not client_id:
        raise ConfigError(f"Strategy '{provider}' has no client_id or client_id_source")

    client_secret = settings.client_secret
    if client_secret is None and settings.client_secret_source:
        client_secret = SecretStr(resolve_credential(settings.client_secret_source))
    if client_secret is None:
        raise ConfigError(
            f"Strategy '{provider}' has no client_secret or client_secret_source"
        )

    return StrategyConfig(
        client_id=client_id,
        client_secret=client_secret,
        scopes=list(settings.scopes),
        redirect_uri=settings.redirect_uri,
        failure_redirect_uri=settings.failure_redirect_uri,
        authorization_url=settings.authorization_url,
        token_url=settings.token_url,
        profile_url=settings.profile_url,
    )
