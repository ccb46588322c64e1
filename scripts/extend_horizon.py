"""Rolling-horizon job: materialize reservations for every schedulable contract."""

from __future__ import annotations

import argparse
import importlib
import json
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
for p in (REPO_ROOT, REPO_ROOT / "src"):
    if str(p) not in sys.path:
        sys.path.insert(0, str(p))

from config import get_settings_module

from tutoring_ledger.container import build_container
from tutoring_ledger.core.exceptions import DomainError
from tutoring_ledger.common.datetime_utils import now_local, parse_iso_date


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--today", help="YYYY-MM-DD (defaults to the current date)")
    parser.add_argument("--days", type=int, help="override HORIZON_DAYS")
    args = parser.parse_args(argv)

    settings = importlib.import_module(get_settings_module())
    container = build_container(
        db_config=dict(settings.DB_CONFIG),
        horizon_days=int(getattr(settings, "HORIZON_DAYS", 56)),
    )
    today = parse_iso_date(args.today) if args.today else now_local().date()
    try:
        created = container.reservation_service.extend_horizon(today=today, days=args.days)
    except DomainError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    print(json.dumps({"today": today.isoformat(), "created": created}))
    return 0


if __name__ == "__main__":
    sys.exit(main())
