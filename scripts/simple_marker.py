#!/usr/bin/env python3
"""Publish a single cube marker over MQTT.

Builds a SyncServer from ``MARKERSYNC_*`` environment variables, inserts one
marker, commits it and keeps republishing the full state until interrupted.
With ``--delete-after`` the marker is deleted after N seconds so subscribers
can observe the Delete lifecycle.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import Any

# Allow running from repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from markersync import MqttMarkerPublisher, SyncConfig, SyncServer, TickError  # noqa: E402

_LOG = logging.getLogger("simple_marker")


def _cube_marker(frame_id: str) -> dict[str, Any]:
    return {
        "header": {"frame_id": frame_id},
        "type": "cube",
        "scale": {"x": 0.45, "y": 0.45, "z": 0.45},
        "color": {"r": 0.0, "g": 0.5, "b": 0.5, "a": 1.0},
        "pose": {
            "position": {"x": 0.0, "y": 0.0, "z": 0.0},
            "orientation": {"x": 0.0, "y": 0.0, "z": 0.0, "w": 1.0},
        },
    }


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Publish a cube marker through a markersync server.",
    )
    parser.add_argument(
        "--name",
        default="my_marker",
        help="Marker id.",
    )
    parser.add_argument(
        "--frame-id",
        default="base_link",
        help="Frame the marker is attached to.",
    )
    parser.add_argument(
        "--delete-after",
        type=float,
        default=0.0,
        help="Delete the marker after N seconds (0 = never).",
    )
    parser.add_argument(
        "--duration",
        type=float,
        default=0.0,
        help="Maximum runtime in seconds (0 = run until Ctrl+C).",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logs.",
    )
    return parser.parse_args()


async def _run(args: argparse.Namespace, config: SyncConfig) -> int:
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, stop.set)

    publisher = MqttMarkerPublisher(config)
    publisher.start()
    try:
        async with SyncServer(config, publisher=publisher) as server:
            server.insert(args.name, _cube_marker(args.frame_id))
            server.commit()
            _LOG.info("Publishing marker '%s' on %s", args.name, config.topic)

            if args.delete_after > 0:

                async def _delete_later() -> None:
                    await asyncio.sleep(args.delete_after)
                    server.delete(args.name)
                    server.commit()
                    _LOG.info("Marker '%s' deleted", args.name)

                loop.create_task(_delete_later())

            waiter = asyncio.create_task(server.wait())
            stopper = asyncio.create_task(stop.wait())
            timeout = args.duration if args.duration > 0 else None
            done, _pending = await asyncio.wait({waiter, stopper}, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
            stopper.cancel()
            if waiter in done:
                waiter.result()
            else:
                waiter.cancel()
    except TickError as exc:
        print(f"[simple_marker] publish loop failed: {exc}", file=sys.stderr)
        return 2
    finally:
        publisher.stop()
    return 0


def _main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    config = SyncConfig.from_env()
    return asyncio.run(_run(args, config))


if __name__ == "__main__":
    raise SystemExit(_main())
