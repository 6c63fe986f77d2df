"""Issue a bearer token for a subject, signed with the configured secret.

Usage:
  SECRET_KEY=... python scripts/issue_token.py --sub alice --minutes 120
"""

import argparse
import sys
from datetime import timedelta

sys.path.insert(0, ".")
from medledger.kernel.identity.jwt import JWTManager


def main() -> int:
    ap = argparse.ArgumentParser()
    ap.add_argument("--sub", required=True, help="Subject identifier")
    ap.add_argument("--minutes", type=int, default=None, help="Lifetime in minutes")
    args = ap.parse_args()

    expires = timedelta(minutes=args.minutes) if args.minutes else None
    token, expires_at, _ = JWTManager().create_access_token(args.sub, expires)
    print(token)
    print(f"expires {expires_at.isoformat()}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
