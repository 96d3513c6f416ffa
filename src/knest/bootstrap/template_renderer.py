# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/knest/bootstrap/template_renderer.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping, Optional

from jinja2 import (
    Environment,
    FileSystemLoader,
    StrictUndefined,
    TemplateNotFound,
    TemplateSyntaxError,
    UndefinedError,
)

from knest.errors import TemplateError

log = logging.getLogger("knest")

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"


class TemplateRenderer:
    """Renders the manifests shipped in knest/templates (IPPool, overlays)."""

    def __init__(self, templates_dir: Optional[Path] = None):
        self.templates_dir = templates_dir or TEMPLATES_DIR
        self.env = Environment(
            loader=FileSystemLoader(str(self.templates_dir)),
            undefined=StrictUndefined,
            autoescape=False,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def render(self, template_name: str, params: Mapping[str, Any]) -> str:
        try:
            tmpl = self.env.get_template(template_name)
        except TemplateNotFound as e:
            raise TemplateError(f"missing template: {template_name}") from e
        except TemplateSyntaxError as e:
            raise TemplateError(f"template {template_name} is invalid: {e}") from e

        try:
            text = tmpl.render(**params)
        except UndefinedError as e:
            raise TemplateError(f"render {template_name}: {e}") from e

        log.debug(f"[template] rendered {template_name}")
        return text
