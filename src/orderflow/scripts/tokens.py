# src/orderflow/scripts/tokens.py
"""
Mint a test auto-login link.

Signs a credential exactly as an issuing application would, checks it
against this deployment's codec and prints the URL to paste into a browser:

    python -m orderflow.scripts.tokens 1 admin

The link works once and expires after AUTO_LOGIN_TOKEN_TTL_SECONDS.
"""

from __future__ import annotations

import argparse
import sys

from orderflow.core.settings import settings
from orderflow.services.credentials import (
    AutoLoginSubject,
    AutoLoginVerificationError,
    InvalidSubjectError,
    get_codec,
)
from orderflow.services.issuer import build_auto_login_url


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate a one-time auto-login URL")
    parser.add_argument("user_id", nargs="?", default="1", help="Local account id")
    parser.add_argument("username", nargs="?", default="admin", help="Local account username")
    parser.add_argument(
        "--issuer",
        default=settings.auto_login_issuer_tag,
        help="Issuer tag to sign as (must be listed in AUTO_LOGIN_ISSUERS)",
    )
    parser.add_argument("--base-url", default=settings.base_url, help="Verifier base URL")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    codec = get_codec()
    user_id: int | str = int(args.user_id) if args.user_id.isdigit() else args.user_id
    subject = AutoLoginSubject(user_id=user_id or None, username=args.username or None)

    try:
        token = codec.encode(subject, args.issuer)
    except InvalidSubjectError as err:
        print(f"Cannot mint token: {err}", file=sys.stderr)
        return 2

    try:
        claims = codec.decode(token)
    except AutoLoginVerificationError as err:
        print(f"Token does not verify against this deployment: {err}", file=sys.stderr)
        return 1

    print(f"Token for user_id={claims.user_id} username={claims.username}")
    print(f"Expires in {settings.auto_login_token_ttl_seconds} seconds, single use")
    print(build_auto_login_url(args.base_url, token))
    return 0


if __name__ == "__main__":
    sys.exit(main())
