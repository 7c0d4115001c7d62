"""
Print a password hash for ADMIN_PASSWORD_HASH.

Usage:
  python scripts/hash_password.py            # prompts for the password
  python scripts/hash_password.py secret123
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import getpass

from services.auth_service import hash_password


def main() -> int:
    password = sys.argv[1] if len(sys.argv) > 1 else getpass.getpass("Admin password: ")
    if not password:
        print("[ERROR] Password cannot be empty", file=sys.stderr)
        return 1
    print(hash_password(password))
    return 0


if __name__ == "__main__":
    sys.exit(main())
