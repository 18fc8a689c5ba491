# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

"""Bootstrap Ansible on a remote host and run a playbook against it."""

__version__ = "0.1.0"
