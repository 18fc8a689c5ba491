# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/ansible_bootstrap/bootstrap/template_renderer.py
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Iterable

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateError

from ..errors import RenderError

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

INSTALLER_TEMPLATE = "installer.sh.j2"
INVENTORY_TEMPLATE = "inventory.ini.j2"


def package_spec(version: str) -> str:
    """pip requirement for the requested ansible version; empty means latest."""
    return f"ansible=={version}" if version else "ansible"


class TemplateRenderer:
    """Renders the installer script and the inventory file. No I/O beyond template loading."""

    def __init__(self, templates_dir: Path = TEMPLATES_DIR):
        self.env = Environment(
            loader=FileSystemLoader(str(templates_dir)),
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
            undefined=StrictUndefined,
        )

    def render(self, template_name: str, context: Dict[str, Any]) -> str:
        try:
            tmpl = self.env.get_template(template_name)
            return tmpl.render(**context)
        except TemplateError as e:
            raise RenderError(f"Error executing {template_name!r} template: {e}") from e

    def render_installer(self, version: str = "") -> str:
        return self.render(INSTALLER_TEMPLATE, {"package_spec": package_spec(version)})

    def render_inventory(self, hosts: Iterable[str], groups: Iterable[str]) -> str:
        """
        Every host gets a local-connection line, then every group gets a
        section listing all hosts again. Groups are not a partition.
        """
        return self.render(INVENTORY_TEMPLATE, {"hosts": list(hosts), "groups": list(groups)})
