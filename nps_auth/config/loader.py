"""RADIUS settings loading.

Load order: defaults → ``[radius]`` section of an INI file → ``RADIUS_*``
environment variables (environment wins).

Recognised keys (INI name / environment variable):
  - primary_host           RADIUS_PRIMARY_HOST (required)
  - primary_port           RADIUS_PRIMARY_PORT
  - shared_secret          RADIUS_SHARED_SECRET (required; plain or encrypted)
  - secondary_host         RADIUS_SECONDARY_HOST
  - secondary_port         RADIUS_SECONDARY_PORT
  - secondary_secret       RADIUS_SECONDARY_SECRET
  - nas_identifier         RADIUS_NAS_IDENTIFIER
  - timeout_ms             RADIUS_TIMEOUT_MS
  - max_retries            RADIUS_MAX_RETRIES
  - auth_method            RADIUS_AUTH_METHOD ("mschapv2" | "pap")
  - message_authenticator  RADIUS_MESSAGE_AUTHENTICATOR
  - require_mutual_auth    RADIUS_REQUIRE_MUTUAL_AUTH
"""

import configparser
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from nps_auth.exceptions import ConfigValidationError
from nps_auth.utils.logger import get_logger

from .schema import RadiusSettings

logger = get_logger(__name__)

SECTION_RADIUS = "radius"
ENV_PREFIX = "RADIUS_"

# INI key -> RadiusSettings field
_KEY_MAP: dict[str, str] = {
    "primary_host": "primary_host",
    "primary_port": "primary_port",
    "shared_secret": "shared_secret_encrypted",
    "secondary_host": "secondary_host",
    "secondary_port": "secondary_port",
    "secondary_secret": "secondary_secret_encrypted",
    "nas_identifier": "nas_identifier",
    "timeout_ms": "timeout_ms",
    "max_retries": "max_retries",
    "auth_method": "auth_method",
    "message_authenticator": "message_authenticator",
    "require_mutual_auth": "require_mutual_auth",
}

_SECRET_KEYS = frozenset({"shared_secret", "secondary_secret"})


def read_config_file(path: str | os.PathLike[str]) -> configparser.ConfigParser:
    """Parse an INI file; a missing file is a configuration error."""
    config = configparser.ConfigParser(interpolation=None)
    file_path = Path(path)
    if not file_path.is_file():
        raise ConfigValidationError(
            f"Configuration file not found: {file_path}", field="config", value=str(file_path)
        )
    try:
        with file_path.open(encoding="utf-8") as fh:
            config.read_file(fh)
    except configparser.Error as exc:
        raise ConfigValidationError(
            f"Invalid configuration file {file_path}: {exc}", field="config"
        ) from exc
    return config


def apply_env_overrides(
    values: dict[str, Any], environ: Mapping[str, str] | None = None
) -> dict[str, Any]:
    """Overlay ``RADIUS_<KEY>`` environment variables onto ``values``."""
    env = os.environ if environ is None else environ
    for key in _KEY_MAP:
        env_var = f"{ENV_PREFIX}{key.upper()}"
        value = env.get(env_var)
        if value is None:
            continue
        values[key] = value
        logger.debug(
            "Applied environment override for config key",
            event="nps_auth.config.env_override_applied",
            section=SECTION_RADIUS,
            key=key,
            env_var=env_var,
        )
    return values


def settings_from_mapping(values: Mapping[str, Any]) -> RadiusSettings:
    """Validate INI-style keys into :class:`RadiusSettings`."""
    data: dict[str, Any] = {}
    for key, value in values.items():
        field = _KEY_MAP.get(key)
        if field is None:
            continue
        if isinstance(value, str):
            value = value.strip()
            if value == "" and field not in ("primary_host", "shared_secret_encrypted"):
                continue
        data[field] = value
    try:
        return RadiusSettings(**data)
    except ValidationError as exc:
        first = exc.errors()[0] if exc.errors() else {}
        loc = ".".join(str(p) for p in first.get("loc", ()))
        ini_key = next((k for k, f in _KEY_MAP.items() if f == loc), loc or None)
        bad_value = first.get("input")
        # never echo secrets back in error details
        if ini_key in _SECRET_KEYS or isinstance(bad_value, Mapping):
            bad_value = None
        raise ConfigValidationError(
            f"Invalid RADIUS configuration ({ini_key}): {first.get('msg', exc)}",
            field=ini_key,
            value=bad_value,
        ) from exc


def load_settings(
    path: str | os.PathLike[str] | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> RadiusSettings:
    """Load :class:`RadiusSettings` from an optional INI file plus environment.

    Raises:
        ConfigValidationError: missing file, missing required keys or values
            outside the allowed ranges.
    """
    values: dict[str, Any] = {}
    if path is not None:
        config = read_config_file(path)
        if config.has_section(SECTION_RADIUS):
            values.update(dict(config.items(SECTION_RADIUS)))
        else:
            logger.warning(
                "Configuration file has no [radius] section",
                event="nps_auth.config.section_missing",
                path=str(path),
            )
    apply_env_overrides(values, environ)
    settings = settings_from_mapping(values)
    logger.debug(
        "Loaded RADIUS settings",
        event="nps_auth.config.loaded",
        primary=f"{settings.primary_host}:{settings.primary_port}",
        secondary=settings.secondary_host,
        auth_method=settings.auth_method,
    )
    return settings


__all__ = [
    "SECTION_RADIUS",
    "ENV_PREFIX",
    "read_config_file",
    "apply_env_overrides",
    "settings_from_mapping",
    "load_settings",
]
