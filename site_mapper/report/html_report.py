"""site_mapper.report.html_report: HTML rendering of the outline through Jinja2."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional, Union

from jinja2 import Environment, FileSystemLoader, select_autoescape

from site_mapper.engine import SitemapResponse

DEFAULT_TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"
TEMPLATE_NAME = "sitemap.html.j2"


@dataclass(slots=True)
class OutlineNode:
    label: str
    children: List[OutlineNode] = field(default_factory=list)


def _indent_width(line: str) -> int:
    # only relative widths matter; a tab counts as four columns
    expanded = line.replace("\t", "    ")
    return len(expanded) - len(expanded.lstrip(" "))


def parse_outline(text: str) -> List[OutlineNode]:
    """Turn an indented outline into a forest of nodes.

    Levels deeper than ``parent + 1`` are attached to the closest open parent.
    """
    roots: List[OutlineNode] = []
    stack: List[tuple[int, OutlineNode]] = []
    for raw in text.splitlines():
        if not raw.strip():
            continue
        level = _indent_width(raw)
        node = OutlineNode(raw.strip())
        while stack and stack[-1][0] >= level:
            stack.pop()
        if stack:
            stack[-1][1].children.append(node)
        else:
            roots.append(node)
        stack.append((level, node))
    return roots


def render_html(
    response: SitemapResponse,
    output_path: Union[Path, str],
    template_dir: Optional[Union[Path, str]] = None,
) -> Path:
    """Render *response* with ``sitemap.html.j2`` and save it to *output_path*.

    Args:
        response: SitemapResponse of one request.
        output_path: path of the resulting HTML file.
        template_dir: directory with the Jinja2 template; the packaged one by default.

    Returns:
        Path of the saved HTML file.
    """
    template_dir = Path(template_dir) if template_dir else DEFAULT_TEMPLATE_DIR
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    env = Environment(
        loader=FileSystemLoader(str(template_dir)),
        autoescape=select_autoescape(["html", "xml", "j2"]),
    )
    template = env.get_template(TEMPLATE_NAME)

    context: dict[str, Any] = {
        "title": response.title,
        "url": response.url,
        "description": response.description,
        "pages_explored": response.pages_explored,
        "outline": parse_outline(response.sitemap),
        "error": response.error,
    }

    output_path.write_text(template.render(**context), encoding="utf-8")
    return output_path
