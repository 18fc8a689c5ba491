# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/ansible_bootstrap/config/models.py
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictStr,
    ValidationError,
    field_validator,
)

from ..errors import ConfigurationError

LOCALHOST = "localhost"


class ProvisionerConfig(BaseModel):
    """
    Per-invocation provisioner settings. Read-only once parsed.

    ``hosts`` always ends with a single synthetic ``localhost`` entry.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    playbook: StrictStr = "~/ansible/playbook.yaml"
    hosts: Tuple[StrictStr, ...] = (LOCALHOST,)
    groups: Tuple[StrictStr, ...] = ()
    tags: Tuple[StrictStr, ...] = ()
    skip_tags: Tuple[StrictStr, ...] = ()
    start_at_task: StrictStr = ""
    limit: StrictStr = ""
    forks: int = Field(default=0, ge=0, strict=True)  # 0 means "omit --forks"
    extra_vars: Dict[StrictStr, Any] = Field(default_factory=dict)
    verbose: StrictBool = False
    force_handlers: StrictBool = False

    become: StrictBool = False
    become_method: StrictStr = "sudo"
    become_user: StrictStr = "user"

    vault_password_file: StrictStr = ""

    use_sudo: StrictBool = True
    skip_install: StrictBool = False
    skip_cleanup: StrictBool = False
    install_version: StrictStr = ""  # empty = latest

    @field_validator("hosts", "groups", "tags", "skip_tags", mode="before")
    @classmethod
    def _none_is_empty_list(cls, v: Any) -> Any:
        return () if v is None else v

    @field_validator("extra_vars", mode="before")
    @classmethod
    def _none_is_empty_map(cls, v: Any) -> Any:
        return {} if v is None else v

    @field_validator("hosts")
    @classmethod
    def _append_localhost(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        return tuple(h for h in v if h != LOCALHOST) + (LOCALHOST,)

    @field_validator("tags", "skip_tags")
    @classmethod
    def _dedupe(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        return tuple(dict.fromkeys(v))


class ConnectionSettings(BaseModel):
    """SSH connection parameters for the target host."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    host: StrictStr
    port: int = Field(default=22, gt=0, lt=65536)
    username: StrictStr = "root"
    password: Optional[StrictStr] = None
    private_key_path: Optional[Path] = None
    timeout: float = Field(default=300.0, gt=0)        # overall connect timeout
    retry_interval: float = Field(default=3.0, gt=0)   # wait between connect attempts


def _summarize(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(x) for x in err.get("loc", ())) or "<root>"
        parts.append(f"{loc}: {err.get('msg')}")
    return "; ".join(parts)


def parse_config(raw: Optional[Mapping[str, Any]]) -> ProvisionerConfig:
    """
    Validate a generic key/value mapping into a ProvisionerConfig.

    Raises ConfigurationError on unknown keys or values of the wrong type.
    """
    if raw is None:
        raw = {}
    if not isinstance(raw, Mapping):
        raise ConfigurationError(
            f"provisioner settings must be a mapping, got {type(raw).__name__}"
        )
    try:
        return ProvisionerConfig.model_validate(dict(raw))
    except ValidationError as e:
        raise ConfigurationError(
            f"invalid provisioner settings: {_summarize(e)}", errors=e.errors()
        ) from e


def parse_connection(raw: Optional[Mapping[str, Any]]) -> ConnectionSettings:
    if not isinstance(raw, Mapping):
        raise ConfigurationError("connection settings must be a mapping with at least 'host'")
    try:
        return ConnectionSettings.model_validate(dict(raw))
    except ValidationError as e:
        raise ConfigurationError(
            f"invalid connection settings: {_summarize(e)}", errors=e.errors()
        ) from e
