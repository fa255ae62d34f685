from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
import sys

# ---- sys.path bootstrap (Windows-friendly) ----
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))
# ---------------------------------------------

from serving_conformance.core.accessor import build_accessor  # noqa: E402
from serving_conformance.core.config import load_settings  # noqa: E402
from serving_conformance.core.scenarios import SCENARIOS  # noqa: E402
from serving_conformance.core.scenarios.runner import run_scenarios, summarize  # noqa: E402


def main(argv=None) -> int:
    ap = argparse.ArgumentParser(description="Run serving API conformance scenarios")
    target = ap.add_mutually_exclusive_group()
    target.add_argument("--base-url", default=None, help="Serving API base URL (overrides CONFORMANCE_API_URL)")
    target.add_argument("--in-memory", action="store_true", help="Run against the in-memory platform")
    ap.add_argument("--namespace", default=None, help="Namespace to create resources in")
    ap.add_argument("--config", default=None, help="YAML/JSON settings file (overrides CONFORMANCE_CONFIG_FILE)")
    ap.add_argument(
        "--scenario",
        action="append",
        choices=sorted(SCENARIOS),
        help="Scenario to run (repeatable; default: all)",
    )
    ap.add_argument("--total-timeout", type=float, default=None, help="Wall-clock budget for the whole run (seconds)")
    ap.add_argument("--json", action="store_true", help="Print reports as JSON")
    ap.add_argument("-v", "--verbose", action="store_true")
    args = ap.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    settings = load_settings(
        Path(args.config) if args.config else None,
        api_url="" if args.in_memory else args.base_url,
        namespace=args.namespace,
    )
    selected = [SCENARIOS[n] for n in (args.scenario or sorted(SCENARIOS))]

    reports = run_scenarios(
        lambda: build_accessor(settings),
        selected,
        settings,
        total_timeout=args.total_timeout,
    )
    totals = summarize(reports)

    if args.json:
        print(json.dumps({"summary": totals, "reports": [r.to_dict() for r in reports]}, indent=2, sort_keys=True))
    else:
        for r in reports:
            print(f"[{r.outcome.upper()}] {r.scenario} ({r.resource})")
            for f in r.failures:
                print(f"    - {f.kind}: {f.message}")
            if r.skip_reason:
                print(f"    skipped: {r.skip_reason}")
        print(f"passed={totals['passed']} failed={totals['failed']} skipped={totals['skipped']}")

    return 1 if totals["failed"] else 0


if __name__ == "__main__":
    raise SystemExit(main())
