"""Run the PlateNotify service: ``python -m platenotify``."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import signal

from platenotify.app import PlateNotifyApp
from platenotify.config import PlateNotifyConfig
from platenotify.models.arrival import ArrivalEvent

_logger = logging.getLogger("platenotify")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Notify staff when a registered plate arrives")
    parser.add_argument("--host", help="HTTP bind host (default: PLATENOTIFY_HTTP_HOST or 0.0.0.0)")
    parser.add_argument("--port", type=int, help="HTTP bind port (default: PLATENOTIFY_HTTP_PORT or 8080)")
    parser.add_argument("--storage", help="Registry JSON file (default: PLATENOTIFY_STORAGE_PATH or plates.json)")
    parser.add_argument("--memory", action="store_true", help="Keep the registry in memory only")
    parser.add_argument("--no-seed", action="store_true", help="Do not seed an empty registry with demo plates")
    parser.add_argument("--mqtt", action="store_true", help="Enable the MQTT transport")
    parser.add_argument("--upstream", help="URL to probe for connectivity")
    parser.add_argument("--verbose", "-v", action="store_true")
    return parser.parse_args(argv)


def _config_from_args(args: argparse.Namespace) -> PlateNotifyConfig:
    overrides: dict[str, object] = {}
    if args.host:
        overrides["http_host"] = args.host
    if args.port:
        overrides["http_port"] = args.port
    if args.memory:
        overrides["storage_path"] = None
    elif args.storage:
        overrides["storage_path"] = args.storage
    if args.no_seed:
        overrides["seed_demo_plates"] = False
    if args.mqtt:
        overrides["mqtt_enabled"] = True
    if args.upstream:
        overrides["upstream_url"] = args.upstream
    return PlateNotifyConfig.from_env(**overrides)


def _log_arrival(event: ArrivalEvent) -> None:
    _logger.info("%s", event.to_message())


async def _run(config: PlateNotifyConfig) -> None:
    async with PlateNotifyApp(config) as app:
        app.bus.subscribe(_log_arrival)
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError):
                loop.add_signal_handler(sig, app.close)
        await app.wait_closed()


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    asyncio.run(_run(_config_from_args(args)))


if __name__ == "__main__":
    main()
