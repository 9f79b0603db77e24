"""site_mapper.report: JSON and HTML renderings of a sitemap response, used by the CLI."""

from site_mapper.report.html_report import parse_outline, render_html
from site_mapper.report.json_report import render_json

__all__ = ["render_json", "render_html", "parse_outline"]
