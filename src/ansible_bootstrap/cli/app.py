# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/ansible_bootstrap/cli/app.py
from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import List, Optional

import typer

from ansible_bootstrap.bootstrap.command import build_command
from ansible_bootstrap.bootstrap.layout import remote_playbook_path, remote_vault_path
from ansible_bootstrap.bootstrap.template_renderer import TemplateRenderer
from ansible_bootstrap.bootstrap.workflow import run_provision
from ansible_bootstrap.comm.ssh import SSHCommunicator
from ansible_bootstrap.config.loader import load_config
from ansible_bootstrap.errors import ProvisionError
from ansible_bootstrap.logging.log import init_logging
from ansible_bootstrap.observers.console import ConsoleObserver
from ansible_bootstrap.observers.jsonfile import JsonFileObserver
from ansible_bootstrap.observers.logger import LoggerObserver


app = typer.Typer(help="Bootstrap ansible on a remote host and run a playbook")


class Artifact(str, Enum):
    command = "command"
    inventory = "inventory"
    installer = "installer"


@app.command()
def run(
    config: Path = typer.Argument(..., help="Bootstrap definition YAML (connection + provisioner)"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Echo debug logging to the console"),
    events_file: Optional[Path] = typer.Option(
        None, "--events-file", help="Also append every event as JSON to this file"
    ),
    log_dir: Optional[Path] = typer.Option(None, "--log-dir", help="Directory for the run log"),
):
    """
    Connect, install ansible (unless skip_install), upload the playbook and
    inventory, run ansible-playbook and clean up (unless skip_cleanup).
    """
    logger, run_id, log_path = init_logging(base_dir=log_dir, verbose=debug)

    try:
        bootstrap = load_config(config)
    except ProvisionError as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2)

    communicator = SSHCommunicator(bootstrap.connection)

    typer.secho("ansible-bootstrap", bold=True)
    typer.echo(f"  Target   : {communicator.describe()}")
    typer.echo(f"  Run ID   : {run_id}")
    typer.echo(f"  Logs     : {log_path}")
    typer.echo("")

    observers: List = [ConsoleObserver(), LoggerObserver(logger)]
    if events_file:
        observers.append(JsonFileObserver(events_file))

    try:
        run_provision(
            bootstrap.provisioner,
            communicator,
            observers,
            retry_interval=bootstrap.connection.retry_interval,
            run_id=run_id,
        )
    except (ProvisionError, OSError) as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)


@app.command()
def render(
    config: Path = typer.Argument(..., help="Bootstrap definition YAML"),
    what: Artifact = typer.Option(Artifact.command, "--what", "-w", help="Artifact to print"),
):
    """
    Print what `run` would upload or execute, without connecting.
    """
    try:
        cfg = load_config(config).provisioner
        renderer = TemplateRenderer()
        if what is Artifact.inventory:
            out = renderer.render_inventory(cfg.hosts, cfg.groups)
        elif what is Artifact.installer:
            out = renderer.render_installer(cfg.install_version)
        else:
            vault = remote_vault_path(cfg.vault_password_file) if cfg.vault_password_file else ""
            out = build_command(cfg, remote_playbook_path(cfg.playbook), vault)
    except ProvisionError as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2)

    typer.echo(out, nl=not out.endswith("\n"))


if __name__ == "__main__":
    app()
