"""
Expire overdue offers.

Offers are also expired lazily whenever they are read or acted on; this sweep
keeps stored statuses current for reports. Safe to run from cron at any
interval.
"""

import sys
from pathlib import Path

# Add parent directory to path so we can import from services
sys.path.insert(0, str(Path(__file__).parent.parent))

import logging

from services.offer_service import expire_stale_offers


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        expired = expire_stale_offers()
    except RuntimeError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1

    print(f"[SUCCESS] Expired {expired} offer(s)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
