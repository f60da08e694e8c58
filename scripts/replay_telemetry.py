#!/usr/bin/env python3
"""Replay recorded telemetry through a local tracking engine.

Reads one JSON telemetry record per line (``-`` for stdin), applies each to
an in-memory :class:`shiptwin.TrackingEngine` and prints every emitted
event.  Useful to check threshold and geofence settings against a captured
device trace before changing them in production.

Optional inputs:
- ``--geofence`` JSON file, applied to every shipment seen in the trace
- ``--thresholds`` JSON file with threshold overrides
- ``SHIPTWIN_WEBHOOK_URL`` to also forward alert events downstream
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Iterator
from pathlib import Path
from typing import Any

_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

import aiohttp  # noqa: E402

from shiptwin import EngineConfig, TrackingEngine, TwinError, WebhookForwarder  # noqa: E402
from shiptwin.state.events import EngineEvent, event_name  # noqa: E402


def _read_records(source: str) -> Iterator[tuple[int, dict[str, Any]]]:
    handle = sys.stdin if source == "-" else open(source, encoding="utf-8")  # noqa: SIM115
    try:
        for lineno, line in enumerate(handle, start=1):
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            yield lineno, json.loads(line)
    finally:
        if handle is not sys.stdin:
            handle.close()


def _load_json(path: str | None) -> dict[str, Any] | None:
    if path is None:
        return None
    return json.loads(Path(path).read_text(encoding="utf-8"))


def _print_event(event: EngineEvent, *, verbose: bool) -> None:
    name = event_name(event).value
    if name == "digital-twin:updated" and not verbose:
        return
    print(json.dumps({"event": name, **event.to_json_dict()}, ensure_ascii=False, sort_keys=True))


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Replay JSON-lines telemetry through a shiptwin engine")
    parser.add_argument("source", help="JSON-lines telemetry file, or '-' for stdin.")
    parser.add_argument("--geofence", default=None, help="JSON geofence applied to every shipment in the trace.")
    parser.add_argument("--thresholds", default=None, help="JSON threshold overrides applied to every shipment.")
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Also print digital-twin:updated events and enable debug logging.",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Return non-zero when any record is rejected.",
    )
    return parser.parse_args()


async def _run(args: argparse.Namespace) -> int:
    config = EngineConfig.from_env()
    engine = TrackingEngine(config)
    engine.subscribe_all(lambda event: _print_event(event, verbose=args.verbose))
    geofence = _load_json(args.geofence)
    thresholds = _load_json(args.thresholds)

    rejected = 0
    configured: set[str] = set()
    async with aiohttp.ClientSession() as session:
        forwarder: WebhookForwarder | None = None
        if config.webhook_url:
            forwarder = WebhookForwarder.from_config(config, loop=asyncio.get_running_loop(), session=session)
            forwarder.attach(engine)

        for lineno, record in _read_records(args.source):
            shipment_id = record.get("shipmentId")
            try:
                if isinstance(shipment_id, str) and shipment_id not in configured:
                    if geofence is not None:
                        engine.set_geofence(shipment_id, geofence)
                    if thresholds is not None:
                        engine.set_thresholds(shipment_id, thresholds)
                    configured.add(shipment_id)
                engine.ingest_telemetry(record)
            except TwinError as exc:
                rejected += 1
                print(f"line {lineno}: rejected: {exc}", file=sys.stderr)
            # Give queued webhook posts a chance to run between records.
            await asyncio.sleep(0)

        if forwarder is not None:
            await forwarder.close()

    stats = engine.stats()
    print(
        f"Summary: {stats.digital_twins} twin(s), {stats.active_alerts} active alert(s), {rejected} rejected record(s)",
        file=sys.stderr,
    )
    return 1 if args.strict and rejected else 0


def main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return asyncio.run(_run(args))


if __name__ == "__main__":
    raise SystemExit(main())
