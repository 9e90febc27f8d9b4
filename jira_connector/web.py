"""Request/response types exchanged with the plugin host, and view rendering."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

MESSAGE_TEMPLATE = "other/message.html"
OAUTH1_COMPLETE_TEMPLATE = "oauth1/complete.html"


@dataclass(frozen=True)
class PluginRequest:
    """An HTTP request forwarded by the plugin host."""

    method: str = "GET"
    path: str = "/"
    headers: dict[str, str] = field(default_factory=dict)
    query: dict[str, str] = field(default_factory=dict)

    def header(self, name: str) -> str:
        """Case-insensitive header lookup; empty string when absent."""
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return ""


@dataclass(frozen=True)
class PluginResponse:
    """An HTTP response handed back to the plugin host."""

    status: int
    content_type: str = "text/html"
    body: str = ""
    headers: dict[str, str] = field(default_factory=dict)


class ViewRenderer(ABC):
    """Renders named templates into responses."""

    @abstractmethod
    def render(
        self,
        template_name: str,
        payload: dict[str, Any],
        status: int = 200,
        content_type: str = "text/html",
    ) -> PluginResponse:
        """Render ``template_name`` with ``payload``."""


class JinjaViewRenderer(ViewRenderer):
    """Renders the HTML templates shipped with the package."""

    def __init__(self, templates_dir: Path | None = None):
        self._env = Environment(
            loader=FileSystemLoader(str(templates_dir or TEMPLATES_DIR)),
            autoescape=select_autoescape(["html", "xml"]),
        )

    def render(
        self,
        template_name: str,
        payload: dict[str, Any],
        status: int = 200,
        content_type: str = "text/html",
    ) -> PluginResponse:
        template = self._env.get_template(template_name.lstrip("/"))
        return PluginResponse(
            status=status, content_type=content_type, body=template.render(**payload)
        )
