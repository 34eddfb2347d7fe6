# src/linkshelf/scripts/credentials.py
"""
Generate admin credential values for the environment.

Prints ``ADMIN_PASSWORD_SHA256`` for a password and a freshly generated
``SESSION_SECRET``, ready to paste into a ``.env`` file:

    python -m linkshelf.scripts.credentials --password 'correct horse'
"""

import argparse
import getpass
import secrets
import sys

from linkshelf.core.security import b64url_encode, hash_text

SECRET_BYTES = 32


def password_hash_line(password: str) -> str:
    return f"ADMIN_PASSWORD_SHA256={hash_text(password)}"


def session_secret_line(num_bytes: int = SECRET_BYTES) -> str:
    return f"SESSION_SECRET={b64url_encode(secrets.token_bytes(num_bytes))}"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Print admin credential environment variables.",
    )
    parser.add_argument("--username", help="Also print ADMIN_USERNAME")
    parser.add_argument(
        "--password",
        help="Admin password to hash (prompted for when omitted)",
    )
    parser.add_argument(
        "--secret-only",
        action="store_true",
        help="Only generate a new SESSION_SECRET",
    )
    parser.add_argument(
        "--no-secret",
        action="store_true",
        help="Do not generate a SESSION_SECRET",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.secret_only and args.no_secret:
        print("--secret-only and --no-secret are mutually exclusive", file=sys.stderr)
        return 2

    lines: list[str] = []
    if not args.secret_only:
        if args.username:
            lines.append(f"ADMIN_USERNAME={args.username}")
        password = args.password
        if password is None:
            password = getpass.getpass("Admin password: ")
        if not password:
            print("Password must not be empty", file=sys.stderr)
            return 1
        lines.append(password_hash_line(password))
    if not args.no_secret:
        lines.append(session_secret_line())

    print("\n".join(lines))
    return 0


if __name__ == "__main__":
    sys.exit(main())
