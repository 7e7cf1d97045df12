"""
CLI helper to list the outgoing emails waiting in emails_sortants.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from backend.dependencies import get_db_client
from backend.emails import SCAN_BATCH_SIZE, scan_pending_emails


def main() -> int:
    parser = argparse.ArgumentParser(description="Scan pending outgoing emails")
    parser.add_argument(
        "-n",
        "--limit",
        type=int,
        default=SCAN_BATCH_SIZE,
        help="Up to how many pending jobs to list",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)
    result = scan_pending_emails(get_db_client(), limit=args.limit)
    print(json.dumps(result, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
