"""aiohttp HTTP transport for plate submissions and registry administration."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from aiohttp import web

from platenotify.config import PlateNotifyConfig
from platenotify.ingress.adapter import IngressAdapter, IngressResponse, StatusCategory
from platenotify.ingress.admin import AdminAdapter

_logger = logging.getLogger(__name__)

HTTP_STATUS: dict[StatusCategory, int] = {
    StatusCategory.OK: 200,
    StatusCategory.BAD_REQUEST: 400,
    StatusCategory.METHOD_NOT_ALLOWED: 405,
    StatusCategory.NOT_FOUND: 404,
    StatusCategory.CONFLICT: 409,
    StatusCategory.INTERNAL_ERROR: 500,
}

_INGRESS_KEY = web.AppKey("ingress", IngressAdapter)
_ADMIN_KEY = web.AppKey("admin", AdminAdapter)
_CORS_KEY = web.AppKey("cors_origin", str)
_TIMEOUT_KEY = web.AppKey("ingest_timeout", float)


def _cors_headers(origin: str) -> dict[str, str]:
    return {
        "Access-Control-Allow-Origin": origin,
        "Access-Control-Allow-Methods": "POST, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type",
    }


def to_http_response(response: IngressResponse, *, cors_origin: str = "*") -> web.Response:
    """Render an :class:`IngressResponse` as an aiohttp response."""
    if response.status is StatusCategory.OK and response.is_empty:
        return web.Response(status=204, headers=_cors_headers(cors_origin))
    return web.json_response(
        response.payload,
        status=HTTP_STATUS[response.status],
        headers={"Access-Control-Allow-Origin": cors_origin},
    )


async def _read_body(request: web.Request) -> bytes | None:
    if not request.can_read_body:
        return None
    return await request.read()


async def _handle_plate(request: web.Request) -> web.Response:
    adapter = request.app[_INGRESS_KEY]
    body = await _read_body(request) if request.method == "POST" else None
    # A caller that gives up waiting abandons the call; it still completes.
    pending = asyncio.ensure_future(adapter.handle(request.method, body))
    try:
        response = await asyncio.wait_for(asyncio.shield(pending), timeout=request.app[_TIMEOUT_KEY])
    except TimeoutError:
        _logger.warning("Plate submission timed out; processing continues in background")
        response = IngressResponse.failure(StatusCategory.INTERNAL_ERROR, "Internal server error", error="TIMEOUT")
    return to_http_response(response, cors_origin=request.app[_CORS_KEY])


async def _list_plates(request: web.Request) -> web.Response:
    response = request.app[_ADMIN_KEY].list_plates()
    return to_http_response(response, cors_origin=request.app[_CORS_KEY])


async def _latest_arrival(request: web.Request) -> web.Response:
    response = request.app[_ADMIN_KEY].latest_arrival()
    return to_http_response(response, cors_origin=request.app[_CORS_KEY])


async def _add_plate(request: web.Request) -> web.Response:
    response = await request.app[_ADMIN_KEY].add(await _read_body(request))
    return to_http_response(response, cors_origin=request.app[_CORS_KEY])


async def _update_plate(request: web.Request) -> web.Response:
    plate_number = request.match_info["plate_number"]
    response = await request.app[_ADMIN_KEY].update(plate_number, await _read_body(request))
    return to_http_response(response, cors_origin=request.app[_CORS_KEY])


async def _remove_plate(request: web.Request) -> web.Response:
    response = await request.app[_ADMIN_KEY].remove(request.match_info["plate_number"])
    return to_http_response(response, cors_origin=request.app[_CORS_KEY])


def build_http_app(
    adapter: IngressAdapter,
    admin: AdminAdapter | None = None,
    *,
    path: str = "/api/plate",
    cors_origin: str = "*",
    ingest_timeout: float = 10.0,
) -> web.Application:
    """Build the aiohttp application.

    The plate endpoint accepts every method; method policy lives in the
    adapter so all transports behave alike.
    """
    app = web.Application()
    app[_INGRESS_KEY] = adapter
    app[_CORS_KEY] = cors_origin
    app[_TIMEOUT_KEY] = ingest_timeout
    app.router.add_route("*", path, _handle_plate)
    if admin is not None:
        app[_ADMIN_KEY] = admin
        app.router.add_get("/api/plates", _list_plates)
        app.router.add_get("/api/arrivals/latest", _latest_arrival)
        app.router.add_post("/api/plates", _add_plate)
        app.router.add_patch("/api/plates/{plate_number}", _update_plate)
        app.router.add_delete("/api/plates/{plate_number}", _remove_plate)
    return app


class HttpIngress:
    """Runs the HTTP transport with an explicit start/stop lifecycle."""

    def __init__(
        self,
        config: PlateNotifyConfig,
        adapter: IngressAdapter,
        admin: AdminAdapter | None = None,
    ) -> None:
        self._config = config
        self._app = build_http_app(
            adapter,
            admin,
            path=config.http_path,
            cors_origin=config.cors_allow_origin,
            ingest_timeout=config.ingest_timeout,
        )
        self._runner: web.AppRunner | None = None

    @property
    def is_running(self) -> bool:
        return self._runner is not None

    @property
    def app(self) -> web.Application:
        return self._app

    async def start(self) -> None:
        if self._runner is not None:
            return
        runner = web.AppRunner(self._app)
        await runner.setup()
        site = web.TCPSite(runner, self._config.http_host, self._config.http_port)
        await site.start()
        self._runner = runner
        _logger.info(
            "HTTP ingress listening on http://%s:%s%s",
            self._config.http_host,
            self._config.http_port,
            self._config.http_path,
        )

    async def stop(self) -> None:
        runner = self._runner
        self._runner = None
        if runner is None:
            return
        await runner.cleanup()
        _logger.info("HTTP ingress stopped")

    async def __aenter__(self) -> HttpIngress:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()
