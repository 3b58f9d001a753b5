#!/usr/bin/env python3
"""
Trigger a probe batch on a running probehost service and print the results.

Usage:
  python scripts/probe_batch.py [--url URL] [--plugin ID ...] [--timeout-ms MS]
  Or set env: PROBEHOST_URL

Example (mock plugin in its failure modes):
  1. Start the service: fastapi dev backend/probehost/main.py
  2. Edit <APP_DATA_DIR>/plugins_data/mock/config.json, e.g. {"mode": "reject"}.
  3. Run: python scripts/probe_batch.py --plugin mock

Exit status is 1 when any probe failed, 2 when the service could not be reached.
"""

import argparse
import os
import sys

import httpx


def run_batch(
    url: str,
    plugin_ids: list[str] | None,
    timeout_ms: int | None,
) -> dict:
    """POST one batch; return the decoded response body."""
    body: dict = {}
    if plugin_ids:
        body["plugin_ids"] = plugin_ids
    if timeout_ms is not None:
        body["timeout_ms"] = timeout_ms
    # Leave headroom over the run deadline for the batch round-trip
    read_timeout = (timeout_ms or 120_000) / 1000 + 10
    r = httpx.post(f"{url.rstrip('/')}/probes/batch", json=body, timeout=read_timeout)
    r.raise_for_status()
    return r.json()


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Run plugins through a probehost service and print their lines."
    )
    parser.add_argument(
        "--url",
        default=os.environ.get("PROBEHOST_URL", "http://localhost:8000/api/v1"),
        help="API base URL including the /api/v1 prefix",
    )
    parser.add_argument(
        "--plugin",
        action="append",
        dest="plugins",
        help="Plugin id to run (repeatable; default: all plugins)",
    )
    parser.add_argument(
        "--timeout-ms",
        type=int,
        default=None,
        help="Run deadline per probe (default: server PROBE_TIMEOUT_MS)",
    )
    args = parser.parse_args()

    try:
        data = run_batch(args.url, args.plugins, args.timeout_ms)
    except httpx.HTTPError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)

    print(f"Batch {data['batch_id']}: {', '.join(data['plugin_ids']) or '(no plugins)'}")
    print("---")
    failed = 0
    for res in data["results"]:
        status = "ok" if res["ok"] else f"{res['error']['kind']}: {res['error']['detail']}"
        print(f"{res['display_name']} ({res['plugin_id']}) {res['elapsed_ms']}ms {status}")
        for line in res["lines"]:
            shown = line.get("value", line.get("text"))
            if line["type"] == "progress":
                shown = f"{line['value']}/{line['max']} {line.get('unit') or ''}".rstrip()
            print(f"  [{line['type']}] {line['label']}: {shown}")
        if not res["ok"]:
            failed += 1
    print("---")
    print(f"Done. ok={len(data['results']) - failed} failed={failed}")
    if failed:
        sys.exit(1)


if __name__ == "__main__":
    main()
