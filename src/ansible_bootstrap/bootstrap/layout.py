# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# Fixed locations on the target host.
import posixpath

BOOTSTRAP_DIRECTORY = "/tmp/ansible-bootstrap"
INVENTORY_FILE_PATH = posixpath.join(BOOTSTRAP_DIRECTORY, ".inventory-ansible-bootstrap", "hosts")
VAULT_DIRECTORY = posixpath.join(BOOTSTRAP_DIRECTORY, ".vault-ansible-bootstrap")
INSTALLER_PATH = "/tmp/ansible-install.sh"


def remote_playbook_path(local_playbook: str) -> str:
    """The playbook's directory is uploaded wholesale, so it lands at the root."""
    return posixpath.join(BOOTSTRAP_DIRECTORY, posixpath.basename(str(local_playbook)))


def remote_vault_path(local_vault_file: str) -> str:
    return posixpath.join(VAULT_DIRECTORY, posixpath.basename(str(local_vault_file)))
