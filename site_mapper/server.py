"""site_mapper.server: aiohttp application exposing ``GET /api/tools/sitemap``."""

from __future__ import annotations

from typing import Optional

from aiohttp import web
from pydantic import ValidationError

from site_mapper.config import MapperConfig
from site_mapper.engine import SitemapRequest, SitemapService
from site_mapper.logger import get_logger

__all__ = ["create_app", "SERVICE_KEY", "SITEMAP_ROUTE"]

log = get_logger("server")

SITEMAP_ROUTE = "/api/tools/sitemap"
SERVICE_KEY = web.AppKey("sitemap_service", SitemapService)

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _flag(value: Optional[str], default: bool) -> bool:
    if value is None or value == "":
        return default
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ValueError(f"not a boolean: {value!r}")


def _parse_request(query) -> SitemapRequest:
    url = query.get("url")
    if not url or not url.strip():
        raise ValueError("URL parameter is required")
    depth_raw = query.get("depth")
    depth = int(depth_raw) if depth_raw not in (None, "") else None
    return SitemapRequest(
        url=url,
        depth=depth,
        debug=_flag(query.get("debug"), False),
        explore=_flag(query.get("explore"), True),
    )


async def handle_sitemap(request: web.Request) -> web.Response:
    try:
        sitemap_request = _parse_request(request.query)
    except ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(p) for p in first.get("loc", ())) or "request"
        return web.json_response({"error": f"Invalid {field}: {first.get('msg')}"}, status=400)
    except ValueError as exc:
        return web.json_response({"error": str(exc)}, status=400)

    service = request.app[SERVICE_KEY]
    response = await service.generate(sitemap_request)
    # partial results are still a success for the client
    return web.json_response(response.to_dict())


def create_app(config: MapperConfig, service: Optional[SitemapService] = None) -> web.Application:
    app = web.Application()
    app[SERVICE_KEY] = service or SitemapService(config)
    app.router.add_get(SITEMAP_ROUTE, handle_sitemap)
    log.info("Serving %s", SITEMAP_ROUTE)
    return app
