# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/ansible_bootstrap/errors.py
from __future__ import annotations

from typing import Any, Dict, List, Optional


class ProvisionError(RuntimeError):
    """Base class for provisioning failures."""


class ConfigurationError(ProvisionError):
    """Raised when provisioner settings cannot be parsed or validated."""

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.errors = errors or []


class PathResolutionError(ProvisionError):
    """Raised when a local playbook or vault password file does not exist."""

    def __init__(self, path: str):
        super().__init__(f"Ansible module not found at path: [{path}]")
        self.path = path


class RemoteConnectionError(ProvisionError):
    """
    Raised when the connection could not be established before the timeout.

    The message is the last underlying connect error, which is also kept
    on ``last_error``.
    """

    def __init__(self, last_error: BaseException):
        super().__init__(str(last_error) or type(last_error).__name__)
        self.last_error = last_error


class TransportError(ProvisionError):
    """Raised when an upload or a command submission fails at the transport layer."""


class CommandFailureError(ProvisionError):
    """Raised when a remote command exits with a non-zero status."""

    def __init__(self, command: str, exit_status: int):
        super().__init__(
            f"Command {command!r} exited with non-zero exit status: {exit_status}"
        )
        self.command = command
        self.exit_status = exit_status


class RenderError(ProvisionError):
    """Raised when a template cannot be rendered."""


class ExtraVarsEncodingError(ProvisionError):
    """Raised when extra-vars cannot be encoded as JSON."""
