# site_mapper/report/json_report.py

"""
JSON report for SiteMapper: writes the sitemap response to a file.
"""
import json
from pathlib import Path

from site_mapper.engine import SitemapResponse


def render_json(response: SitemapResponse, output_path: Path | str, *, pretty: bool = True) -> Path:
    """
    Save *response* as JSON at *output_path*.

    :param response: SitemapResponse of one request
    :param output_path: path of the JSON file
    :return: Path of the saved file
    """
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)

    with output.open('w', encoding='utf-8') as f:
        json.dump(response.to_dict(), f, ensure_ascii=False, indent=2 if pretty else None)

    return output
