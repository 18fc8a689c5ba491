# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/ansible_bootstrap/bootstrap/workflow.py
from __future__ import annotations

import io
import logging
import posixpath
from enum import Enum
from pathlib import Path
from typing import IO, Iterable, List, Optional, Tuple

from ..comm.interface import Communicator, Session
from ..config.models import ProvisionerConfig
from ..errors import PathResolutionError, TransportError
from ..execution.runner import RemoteExecutor
from ..observers.dispatcher import EventBus
from ..observers.events import (
    CleanupFailed,
    ConnectRetry,
    PhaseEntered,
    Progress,
    ProvisionFailed,
    ProvisionSucceeded,
    RemoteOutput,
)
from ..observers.interface import Observer
from ..utils.retry import DEFAULT_RETRY_INTERVAL, establish
from .command import build_command
from .layout import (
    BOOTSTRAP_DIRECTORY,
    INSTALLER_PATH,
    INVENTORY_FILE_PATH,
    remote_playbook_path,
    remote_vault_path,
)
from .template_renderer import TemplateRenderer, package_spec

log = logging.getLogger("ansible_bootstrap")


class WorkflowPhase(str, Enum):
    CONNECTING = "Connecting"
    INSTALLING = "Installing"
    UPLOADING_ARTIFACTS = "UploadingArtifacts"
    BUILDING_COMMAND = "BuildingCommand"
    RUNNING = "Running"
    CLEANING_UP = "CleaningUp"
    DONE = "Done"
    FAILED = "Failed"


class DeploymentWorkflow:
    """
    Bootstraps ansible on one target and runs the configured playbook:

      Connecting -> Installing (unless skip_install) -> UploadingArtifacts
      -> BuildingCommand -> Running -> CleaningUp (unless skip_cleanup) -> Done

    Any step failure moves to Failed and re-raises. Cleanup failures are
    reported but never change the outcome. The session is closed exactly
    once, as the very last action, on every path where it was opened.

    There is no timeout on the remote command once it is running.
    """

    def __init__(
        self,
        cfg: ProvisionerConfig,
        communicator: Communicator,
        bus: Optional[EventBus] = None,
        *,
        retry_interval: float = DEFAULT_RETRY_INTERVAL,
        renderer: Optional[TemplateRenderer] = None,
    ):
        self.cfg = cfg
        self.communicator = communicator
        self.bus = bus or EventBus(host=communicator.describe())
        self.retry_interval = retry_interval
        self.renderer = renderer or TemplateRenderer()
        self.executor = RemoteExecutor(output=self._on_output)

        self.phases: List[WorkflowPhase] = []
        self.command: Optional[str] = None

    # ------------------ events ------------------

    @property
    def phase(self) -> Optional[WorkflowPhase]:
        return self.phases[-1] if self.phases else None

    def _enter(self, phase: WorkflowPhase) -> None:
        self.phases.append(phase)
        log.debug("phase -> %s", phase.value)
        self.bus.emit(PhaseEntered(**self.bus.ctx(), phase=phase.value))

    def _progress(self, text: str) -> None:
        log.info(text)
        self.bus.emit(Progress(**self.bus.ctx(), text=text))

    def _on_output(self, stream: str, line: str) -> None:
        self.bus.emit(RemoteOutput(**self.bus.ctx(), stream=stream, line=line))

    def _on_retry(self, attempt: int, exc: Exception) -> None:
        self.bus.emit(ConnectRetry(**self.bus.ctx(), attempt=attempt, error=str(exc)))

    # ------------------ remote helpers ------------------

    def _run(self, session: Session, command: str) -> int:
        if self.cfg.use_sudo:
            command = "sudo " + command
        return self.executor.run(session, command)

    def _upload(self, session: Session, remote_path: str, stream: IO[bytes], mode: Optional[int] = None) -> None:
        try:
            session.upload_file(remote_path, stream, mode=mode)
        except OSError as e:
            raise TransportError(f"Error uploading {remote_path}: {e}") from e

    def _prepare_dir(self, session: Session, remote_dir: str) -> None:
        self._run(session, f"mkdir -p {remote_dir}")
        self._run(session, f"chmod 0777 {remote_dir}")

    def _resolve_path(self, path: str) -> Path:
        expanded = Path(path).expanduser()
        if expanded.exists():
            return expanded
        raise PathResolutionError(path)

    # ------------------ steps ------------------

    def _install(self, session: Session) -> None:
        spec = package_spec(self.cfg.install_version)
        self._progress(f"Installing '{spec}'...")

        script = self.renderer.render_installer(self.cfg.install_version)

        self._progress(f"Uploading ansible installer program to {INSTALLER_PATH}...")
        self._upload(session, INSTALLER_PATH, io.BytesIO(script.encode("utf-8")), mode=0o755)

        # the script removes itself once it has run
        self._run(session, f"/bin/bash -c '{INSTALLER_PATH} && rm {INSTALLER_PATH}'")
        self._progress("Ansible installed.")

    def _upload_vault_password_file(self, session: Session, local_path: Path) -> str:
        target = remote_vault_path(local_path.name)
        self._prepare_dir(session, posixpath.dirname(target))

        self._progress(f"Uploading ansible vault password file to '{target}'...")
        with local_path.open("rb") as f:
            self._upload(session, target, f)
        self._progress("Ansible vault password file uploaded.")
        return target

    def _upload_inventory(self, session: Session) -> None:
        self._progress("Generating ansible inventory...")
        inventory = self.renderer.render_inventory(self.cfg.hosts, self.cfg.groups)

        self._prepare_dir(session, posixpath.dirname(INVENTORY_FILE_PATH))

        self._progress(f"Uploading ansible inventory to {INVENTORY_FILE_PATH}...")
        self._upload(session, INVENTORY_FILE_PATH, io.BytesIO(inventory.encode("utf-8")))
        self._progress("Ansible inventory uploaded.")

    def _upload_artifacts(self, session: Session) -> Tuple[str, str]:
        playbook = self._resolve_path(self.cfg.playbook)
        playbook_dir = playbook.parent

        self._progress(f"Uploading playbook directory {playbook_dir} to {BOOTSTRAP_DIRECTORY}...")
        try:
            session.upload_dir(BOOTSTRAP_DIRECTORY, playbook_dir)
        except OSError as e:
            raise TransportError(f"Error uploading {playbook_dir}: {e}") from e

        vault_remote = ""
        if self.cfg.vault_password_file:
            vault_local = self._resolve_path(self.cfg.vault_password_file)
            vault_remote = self._upload_vault_password_file(session, vault_local)

        self._upload_inventory(session)
        return remote_playbook_path(playbook.name), vault_remote

    def _cleanup(self, session: Session) -> None:
        self._progress("Cleaning up after bootstrap...")
        try:
            self._run(session, f"rm -rf {BOOTSTRAP_DIRECTORY}")
        except Exception as e:
            log.warning("cleanup of %s failed: %s", BOOTSTRAP_DIRECTORY, e, exc_info=True)
            self.bus.emit(CleanupFailed(**self.bus.ctx(), error=str(e)))
            return
        self._progress("Cleanup complete.")

    def _disconnect(self, session: Session) -> None:
        try:
            session.close()
        except Exception as e:
            log.warning("disconnect from %s failed: %s", self.communicator.describe(), e)

    # ------------------ public API ------------------

    def run(self) -> None:
        cfg = self.cfg
        session: Optional[Session] = None
        try:
            self._enter(WorkflowPhase.CONNECTING)
            session = establish(
                self.communicator.connect,
                timeout=self.communicator.timeout,
                interval=self.retry_interval,
                on_retry=self._on_retry,
            )
            self._progress(f"Connected to {self.communicator.describe()}.")

            if not cfg.skip_install:
                self._enter(WorkflowPhase.INSTALLING)
                self._install(session)

            self._enter(WorkflowPhase.UPLOADING_ARTIFACTS)
            playbook_path, vault_path = self._upload_artifacts(session)

            self._enter(WorkflowPhase.BUILDING_COMMAND)
            self.command = build_command(cfg, playbook_path, vault_path)

            self._enter(WorkflowPhase.RUNNING)
            self._progress(f"running command: {self.command}")
            self._run(session, self.command)

            if not cfg.skip_cleanup:
                self._enter(WorkflowPhase.CLEANING_UP)
                self._cleanup(session)

            self._enter(WorkflowPhase.DONE)
            self.bus.emit(ProvisionSucceeded(**self.bus.ctx()))
        except Exception as e:
            failed_in = self.phase.value if self.phase else WorkflowPhase.CONNECTING.value
            self._enter(WorkflowPhase.FAILED)
            self.bus.emit(ProvisionFailed(**self.bus.ctx(), phase=failed_in, error=str(e)))
            raise
        finally:
            if session is not None:
                self._disconnect(session)


def run_provision(
    cfg: ProvisionerConfig,
    communicator: Communicator,
    observers: Optional[Iterable[Observer]] = None,
    *,
    retry_interval: float = DEFAULT_RETRY_INTERVAL,
    run_id: Optional[str] = None,
) -> None:
    """
    Single entry point: run the whole workflow against one target.

    Returns None on success; raises the terminal ProvisionError otherwise.
    Progress and remote output go to the observers.
    """
    bus = EventBus(observers, host=communicator.describe(), run_id=run_id)
    DeploymentWorkflow(cfg, communicator, bus, retry_interval=retry_interval).run()
