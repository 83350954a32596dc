#!/usr/bin/env python3
"""Passive MQTT subscriber for markersync batches.

Subscribes to the server's topic, decodes every full-state batch into a
MarkerMirror and prints the markers that appeared, changed or vanished.
Start it at any time: the view converges on the first batch received.
"""

from __future__ import annotations

import argparse
import json
import logging
import signal
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

# Allow running from repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

import paho.mqtt.client as mqtt  # noqa: E402

from markersync import MarkerMirror, SyncConfig, WireFormatError  # noqa: E402

_LOG = logging.getLogger("watch_markers")


@dataclass
class WatchStats:
    started_at: float
    batches: int = 0
    decode_failed: int = 0
    changes: int = 0


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Watch markersync batches and print view changes.",
    )
    parser.add_argument(
        "--duration",
        type=int,
        default=0,
        help="Maximum runtime in seconds (0 = run until Ctrl+C).",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Pretty-print the full view after every change.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logs.",
    )
    return parser.parse_args()


def _print_summary(stats: WatchStats, mirror: MarkerMirror) -> None:
    runtime = time.time() - stats.started_at
    print("[watch] Summary")
    print(f"[watch]   runtime_s     : {runtime:.1f}")
    print(f"[watch]   batches       : {stats.batches}")
    print(f"[watch]   decode_failed : {stats.decode_failed}")
    print(f"[watch]   changes       : {stats.changes}")
    print(f"[watch]   visible       : {len(mirror)}")


def _main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    config = SyncConfig.from_env()
    mirror = MarkerMirror()
    stats = WatchStats(started_at=time.time())
    should_stop = False

    def stop_handler(_signum: int, _frame: Any) -> None:
        nonlocal should_stop
        should_stop = True

    signal.signal(signal.SIGINT, stop_handler)
    signal.signal(signal.SIGTERM, stop_handler)

    client = mqtt.Client(
        callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
        protocol=mqtt.MQTTv5,
    )
    client.enable_logger(_LOG)
    if config.mqtt_username:
        client.username_pw_set(config.mqtt_username, config.mqtt_password)
    if config.mqtt_tls:
        client.tls_set()

    def on_connect(
        c: mqtt.Client,
        _userdata: Any,
        _flags: mqtt.ConnectFlags,
        reason_code: mqtt.ReasonCode,
        _properties: mqtt.Properties | None,
    ) -> None:
        if reason_code.value != 0:
            print(f"[watch] MQTT connect failed: {reason_code}", file=sys.stderr)
            c.disconnect()
            return
        print(f"[watch] Connected. Subscribing to {config.topic}")
        c.subscribe(config.topic, qos=config.mqtt_qos)

    def on_message(_c: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
        stats.batches += 1
        try:
            changed = mirror.apply_bytes(msg.payload)
        except WireFormatError as exc:
            stats.decode_failed += 1
            print(f"[watch] decode_failed: {exc}")
            return
        if not changed:
            return
        stats.changes += 1
        for marker_id in sorted(changed):
            state = "visible" if marker_id in mirror else "gone"
            print(f"[watch] batch#{stats.batches} {marker_id}: {state}")
        if args.json:
            print(json.dumps(mirror.view(), indent=2, sort_keys=True))

    client.on_connect = on_connect
    client.on_message = on_message

    print(f"[watch] Connecting to {config.mqtt_host}:{config.mqtt_port}...")
    try:
        client.connect(config.mqtt_host, config.mqtt_port, keepalive=config.mqtt_keepalive)
        client.loop_start()
        while not should_stop:
            if args.duration > 0 and (time.time() - stats.started_at) >= args.duration:
                print(f"[watch] Reached --duration={args.duration}s, stopping.")
                break
            time.sleep(0.5)
    except KeyboardInterrupt:
        pass
    finally:
        should_stop = True
        try:
            client.disconnect()
        finally:
            client.loop_stop()

    _print_summary(stats, mirror)
    return 0


if __name__ == "__main__":
    raise SystemExit(_main())
