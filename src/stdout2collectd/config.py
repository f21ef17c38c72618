"""Configuration loader for stdout2collectd."""

from __future__ import annotations

import tomllib
from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from stdout2collectd.errors import ConfigurationError
from stdout2collectd.limits import (
    DATA_MAX_NAME_LEN,
    DEFAULT_LIMIT,
    DEFAULT_MAX_EVENT_ID,
    DEFAULT_MAX_EVENT_LENGTH,
    DEFAULT_SERVICE,
    DEFAULT_WINDOW,
    DEFAULT_WRITE_BUFFER,
    HOSTNAME_MAX_LEN,
)

if TYPE_CHECKING:
    from collections.abc import Mapping
    from pathlib import Path


type WriteBufferPolicy = Literal["block", "drop", "exit"]

CONFIG_TABLE = "stdout2collectd"


def parse_service(service: str) -> tuple[str, str]:
    """Split a ``<plugin>/<type>`` service string on its first slash.

    Args:
        service: Service identifier, e.g. ``"stdout/prv"``.

    Returns:
        The ``(plugin, type)`` pair.

    Raises:
        ConfigurationError: If there is no slash or either part is empty or too long.
    """
    if not isinstance(service, str):
        raise ConfigurationError(f"invalid service: {service!r}")
    plugin, sep, type_name = service.partition("/")
    if not sep:
        raise ConfigurationError(f"invalid plugin/type: no `/` found in `{service}`")
    if not plugin or not type_name:
        raise ConfigurationError(f"invalid service: {service}")
    if len(plugin.encode()) >= DATA_MAX_NAME_LEN or len(type_name.encode()) >= DATA_MAX_NAME_LEN:
        raise ConfigurationError(f"invalid service: {service}")
    return plugin, type_name


_LINE_BREAKING = (b"\0", b"\r", b"\n")


def _check_line_safe(value: bytes) -> None:
    if any(ch in value for ch in _LINE_BREAKING):
        raise ValueError("must not contain NUL, CR or LF")


def _format_validation_error(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        loc = ".".join(str(item) for item in error["loc"]) or "settings"
        parts.append(f"{loc}: {error['msg']}")
    return "; ".join(parts)


class Settings(BaseModel):
    """Immutable runtime settings.

    The hostname is stored as bytes, already cut to ``HOSTNAME_MAX_LEN``.
    The cut is byte based and may split a multi-byte character.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    plugin: str = Field(..., description="collectd plugin name")
    type_name: str = Field(..., alias="type", description="collectd type name")
    hostname: bytes = Field(default=b"", description="Host reported in notifications")
    limit: int = Field(default=DEFAULT_LIMIT, ge=0, description="Messages per window, 0 = off")
    window: float = Field(default=DEFAULT_WINDOW, gt=0, description="Rate window in seconds")
    max_event_length: int = Field(
        default=DEFAULT_MAX_EVENT_LENGTH, gt=0, description="Max message bytes per fragment"
    )
    max_event_id: int = Field(
        default=DEFAULT_MAX_EVENT_ID, gt=0, description="Fragment sequence number wraps after this"
    )
    write_buffer: WriteBufferPolicy = Field(
        default=DEFAULT_WRITE_BUFFER,
        description="Behaviour on a full write buffer (accepted, not implemented)",
    )

    @field_validator("plugin", "type_name")
    @classmethod
    def validate_identifier(cls, value: str) -> str:
        if not value:
            raise ValueError("must not be empty")
        if len(value.encode()) >= DATA_MAX_NAME_LEN:
            raise ValueError(f"must be shorter than {DATA_MAX_NAME_LEN} bytes")
        _check_line_safe(value.encode())
        return value

    @field_validator("hostname", mode="before")
    @classmethod
    def truncate_hostname(cls, value: object) -> object:
        if isinstance(value, str):
            try:
                value = value.encode("utf-8")
            except UnicodeEncodeError as exc:
                raise ValueError(f"hostname is not encodable: {exc.reason}") from None
        if isinstance(value, bytes | bytearray):
            _check_line_safe(bytes(value))
            return bytes(value[:HOSTNAME_MAX_LEN])
        return value

    @classmethod
    def create(cls, **values: Any) -> Settings:
        """Validate ``values`` into settings, raising ``ConfigurationError`` on failure.

        A ``service`` key is split into ``plugin`` and ``type`` unless those are
        given explicitly. Keys whose value is ``None`` are ignored.
        """
        data = {key: value for key, value in values.items() if value is not None}
        service = data.pop("service", None)
        if service is not None and not ("plugin" in data or "type" in data):
            data["plugin"], data["type"] = parse_service(service)
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise ConfigurationError(
                f"invalid configuration: {_format_validation_error(exc)}"
            ) from None

    @classmethod
    def load(cls, config_path: Path | None = None, **overrides: Any) -> Settings:
        """Load settings from an optional TOML file, then apply ``overrides``.

        Without a file or a service anywhere, the default ``stdout/prv`` service is used.
        """
        data: dict[str, Any] = {}
        if config_path is not None:
            data.update(read_config_file(config_path))
        for key, value in overrides.items():
            if value is None:
                continue
            if key == "service":
                data.pop("plugin", None)
                data.pop("type", None)
            data[key] = value
        if not any(key in data for key in ("service", "plugin", "type")):
            data["service"] = DEFAULT_SERVICE
        return cls.create(**data)


def read_config_file(config_path: Path) -> dict[str, Any]:
    """Read settings from a TOML file.

    Values may sit at the top level or under a ``[stdout2collectd]`` table;
    dashes in keys are accepted in place of underscores.
    """
    try:
        with open(config_path, "rb") as f:
            raw = tomllib.load(f)
    except OSError as exc:
        raise ConfigurationError(f"cannot read config file {config_path}: {exc}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigurationError(f"invalid config file {config_path}: {exc}") from exc

    table: Mapping[str, Any] = raw.get(CONFIG_TABLE, raw)
    if not isinstance(table, dict):
        raise ConfigurationError(f"invalid config file {config_path}: [{CONFIG_TABLE}] is not a table")
    return {key.replace("-", "_"): value for key, value in table.items()}
