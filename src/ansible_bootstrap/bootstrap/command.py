# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/ansible_bootstrap/bootstrap/command.py
from __future__ import annotations

import json
from typing import List

from ..config.models import ProvisionerConfig
from ..errors import ExtraVarsEncodingError
from .layout import INVENTORY_FILE_PATH


def encode_extra_vars(extra_vars: dict) -> str:
    try:
        return json.dumps(extra_vars, sort_keys=True, separators=(",", ":"), allow_nan=False)
    except (TypeError, ValueError) as e:
        raise ExtraVarsEncodingError(f"cannot encode extra_vars as JSON: {e}") from e


def build_command(
    cfg: ProvisionerConfig,
    playbook_path: str,
    vault_password_path: str = "",
    inventory_path: str = INVENTORY_FILE_PATH,
) -> str:
    """
    Assemble the ansible-playbook command line.

    Flags are appended in a fixed order; the log output and tests rely on it.
    """
    parts: List[str] = [
        f"ansible-playbook {playbook_path}",
        f"--inventory-file={inventory_path}",
    ]
    if cfg.extra_vars:
        parts.append(f"--extra-vars='{encode_extra_vars(cfg.extra_vars)}'")
    if cfg.skip_tags:
        parts.append(f"--skip-tags={','.join(cfg.skip_tags)}")
    if cfg.tags:
        parts.append(f"--tags={','.join(cfg.tags)}")
    if vault_password_path:
        parts.append(f"--vault-password-file={vault_password_path}")
    if cfg.start_at_task:
        parts.append(f"--start-at-task={cfg.start_at_task}")
    if cfg.limit:
        parts.append(f"--limit={cfg.limit}")
    if cfg.forks > 0:
        parts.append(f"--forks={cfg.forks}")
    if cfg.verbose:
        parts.append("--verbose")
    if cfg.force_handlers:
        parts.append("--force-handlers")
    if cfg.become:
        parts.append(
            f"--become --become-method='{cfg.become_method}' --become-user='{cfg.become_user}'"
        )
    return " ".join(parts)
