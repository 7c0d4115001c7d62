"""
Create a demo dealer with a buy code for testing and demos.

Creates (if missing):
- Dealer login: demo-dealer / demo-password
- One unlimited, non-expiring buy code for that dealer
"""

import sys
from pathlib import Path

# Add parent directory to path so we can import from services
sys.path.insert(0, str(Path(__file__).parent.parent))

import argparse

from domain.errors import WorkflowError
from repositories.dealer_repository import get_dealer_credentials
from services.dealer_service import create_dealer, issue_buy_code, list_buy_codes

DEMO_USERNAME = "demo-dealer"
DEMO_PASSWORD = "demo-password"


def create_demo_dealer(username: str, password: str) -> None:
    """Create or reuse the demo dealer and make sure it has a buy code."""

    existing = get_dealer_credentials(username)
    if existing:
        dealer = existing[0]
        print(f"Demo dealer already exists: {dealer.dealer_id} ({dealer.username})")
    else:
        dealer = create_dealer(
            username=username,
            password=password,
            dealer_name="Demo Motors",
            email="demo@example.com",
            profile={"contact_name": "Demo User", "phone": "555-0100"},
        )
        print("[SUCCESS] Demo dealer created!")
        print(f"  Dealer ID: {dealer.dealer_id}")
        print(f"  Username:  {username}")
        print(f"  Password:  {password}")

    codes = list_buy_codes(dealer_id=dealer.dealer_id)
    if codes:
        print(f"  Buy code:  {codes[0].code} (existing)")
        return

    buy_code = issue_buy_code(dealer.dealer_id)
    print(f"  Buy code:  {buy_code.code}")


def main() -> int:
    parser = argparse.ArgumentParser(description="Create a demo dealer and buy code")
    parser.add_argument("--username", default=DEMO_USERNAME)
    parser.add_argument("--password", default=DEMO_PASSWORD)
    args = parser.parse_args()

    try:
        create_demo_dealer(args.username, args.password)
    except WorkflowError as e:
        print(f"[ERROR] {e.message}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
