"""Jinja2 templating for notification bodies.

A template spec is one of:
- None or "" -> nothing to render
- "file:<name>" -> apps/notify/templates/<name> (".j2" may be omitted)
- {"type": "inline" | "file", "template": "..."}
- any other string -> an inline template

Render problems (missing file, syntax or runtime error) raise ValueError.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import jinja2

TEMPLATES_DIR = Path(__file__).parent / "templates"

logger = logging.getLogger(__name__)

_env = jinja2.Environment(
    loader=jinja2.FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=False,
    keep_trailing_newline=True,
)


def _resolve(spec: Any) -> jinja2.Template | None:
    if isinstance(spec, dict):
        kind, source = spec.get("type", "inline"), spec.get("template")
    elif isinstance(spec, str):
        kind, source = ("file", spec[5:]) if spec.startswith("file:") else ("inline", spec)
    else:
        raise ValueError(f"Unsupported template spec: {type(spec).__name__}")

    if not source:
        return None
    if kind != "file":
        return _env.from_string(source)

    for name in (source, f"{source}.j2"):
        try:
            return _env.get_template(name)
        except jinja2.TemplateNotFound:
            continue
    raise ValueError(f"Template file not found: {source}")


def render_template(spec: Any, context: dict[str, Any]) -> str | None:
    """Render a template spec with ``context``; None when the spec is empty."""
    if not spec:
        return None
    try:
        template = _resolve(spec)
        if template is None:
            return None
        return template.render(**(context or {}))
    except jinja2.TemplateError as e:
        raise ValueError(f"Jinja2 render error: {e}") from e


class NotificationTemplatingService:
    """Builds template context and renders per-driver message bodies."""

    def build_template_context(self, message_dict: dict[str, Any]) -> dict[str, Any]:
        """Variables available in message templates.

        Build details from ``context["build"]`` are available both as
        ``build.<field>`` and as top-level names (``repo``, ``branch``, ...).
        """
        context = message_dict.get("context") or {}
        build = context.get("build") or {}

        variables: dict[str, Any] = {k: v for k, v in build.items()}
        variables.update(
            title=message_dict["title"],
            message=message_dict["message"],
            severity=message_dict["severity"],
            channel=message_dict["channel"],
            tags=message_dict.get("tags") or {},
            context=context,
            build=build,
            generated_at=datetime.now(timezone.utc).isoformat(),
        )
        return variables

    def render_message_templates(
        self, driver_name: str, message_dict: dict[str, Any], config: dict[str, Any]
    ) -> dict[str, str | None]:
        """Render the text body (and an optional HTML body) for a driver.

        ``config["template"]`` (or ``text_template``) overrides the default
        ``file:<driver>_text.j2``; ``html_template`` is optional and a failure
        to render it only logs a warning.
        """
        config = config or {}
        variables = self.build_template_context(message_dict)

        source = config.get("template") or config.get("text_template") or f"file:{driver_name}_text.j2"
        try:
            text = render_template(source, variables)
        except ValueError as e:
            raise ValueError(f"Failed to render {driver_name} template ({source}): {e}") from e

        html = None
        if config.get("html_template"):
            try:
                html = render_template(config["html_template"], variables) or None
            except ValueError as e:
                logger.warning(f"HTML template for {driver_name} failed to render: {e}")

        return {"text": text, "html": html}
