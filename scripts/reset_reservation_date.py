"""Reset a reservation back to a given date (audited override).

Bypasses the substitution flow; use only to repair data.
"""

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
from tutoring_ledger.common.datetime_utils import parse_iso_date


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("reservation_id", type=int)
    parser.add_argument("original_date", help="YYYY-MM-DD")
    parser.add_argument("--operator", required=True)
    parser.add_argument("--reason")
    args = parser.parse_args(argv)

    settings = importlib.import_module(get_settings_module())
    container = build_container(db_config=dict(settings.DB_CONFIG))
    try:
        result = container.corrections.reset_reservation_date(
            args.reservation_id,
            parse_iso_date(args.original_date),
            operator=args.operator,
            reason=args.reason,
        )
    except DomainError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    print(json.dumps(result.to_dict(), ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
