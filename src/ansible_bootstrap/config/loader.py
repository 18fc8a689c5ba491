# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/ansible_bootstrap/config/loader.py
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import yaml

from ..errors import ConfigurationError
from .models import ConnectionSettings, ProvisionerConfig, parse_config, parse_connection


@dataclass(frozen=True)
class BootstrapFile:
    connection: ConnectionSettings
    provisioner: ProvisionerConfig


def load_config(path: str | Path) -> BootstrapFile:
    """
    Load a bootstrap definition with ``connection:`` and ``provisioner:`` sections.

    Environment variables like ${HOME} are expanded before parsing.
    """
    try:
        raw = Path(path).read_text()
    except OSError as e:
        raise ConfigurationError(f"cannot read config file {path}: {e}") from e

    expanded = os.path.expandvars(raw)

    try:
        data = yaml.safe_load(expanded)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a mapping at the top level")

    return BootstrapFile(
        connection=parse_connection(data.get("connection")),
        provisioner=parse_config(data.get("provisioner")),
    )
