"""Console entry point: ``nps-auth login|probe|encrypt-secret``."""

from __future__ import annotations

import argparse
import asyncio
import getpass
import json
import logging
import os
import sys
from typing import Any

from nps_auth.auth.radius_auth import RADIUSAuthBackend
from nps_auth.config.loader import (
    SECTION_RADIUS,
    apply_env_overrides,
    read_config_file,
    settings_from_mapping,
)
from nps_auth.config.schema import RadiusSettings
from nps_auth.exceptions import NpsAuthError
from nps_auth.radius.results import AuthResult
from nps_auth.utils.logger import configure, get_logger
from nps_auth.utils.secret_store import encrypt_secret

logger = get_logger(__name__)

# CLI flag -> [radius] key
_FLAG_KEYS = {
    "host": "primary_host",
    "port": "primary_port",
    "secret": "shared_secret",
    "secondary_host": "secondary_host",
    "secondary_port": "secondary_port",
    "secondary_secret": "secondary_secret",
    "nas_identifier": "nas_identifier",
    "timeout_ms": "timeout_ms",
    "retries": "max_retries",
    "auth_method": "auth_method",
}


def _load_settings(args: argparse.Namespace) -> RadiusSettings:
    values: dict[str, Any] = {}
    if args.config:
        config = read_config_file(args.config)
        if config.has_section(SECTION_RADIUS):
            values.update(dict(config.items(SECTION_RADIUS)))
    apply_env_overrides(values)
    for flag, key in _FLAG_KEYS.items():
        value = getattr(args, flag, None)
        if value is not None:
            values[key] = value
    if getattr(args, "no_message_authenticator", False):
        values["message_authenticator"] = False
    if getattr(args, "require_mutual_auth", False):
        values["require_mutual_auth"] = True
    return settings_from_mapping(values)


def _print_result(result: AuthResult) -> None:
    print(json.dumps(result.to_dict(), indent=2, sort_keys=True))


def cmd_login(args: argparse.Namespace) -> int:
    settings = _load_settings(args)
    password = args.password
    if password is None:
        if args.stdin:
            password = sys.stdin.readline().rstrip("\n")
        else:
            password = getpass.getpass("Password: ")
    backend = RADIUSAuthBackend(settings)
    result = asyncio.run(backend.authenticate_async(args.username, password))
    _print_result(result)
    return 0 if result.success else 1


def cmd_probe(args: argparse.Namespace) -> int:
    settings = _load_settings(args)
    backend = RADIUSAuthBackend(settings)
    result = asyncio.run(backend.test_connection())
    _print_result(result)
    return 0 if result.success else 1


def cmd_encrypt_secret(args: argparse.Namespace) -> int:
    secret = args.secret
    if secret is None:
        secret = getpass.getpass("Shared secret: ")
    if not secret:
        print("Secret must not be empty", file=sys.stderr)
        return 1
    print(encrypt_secret(secret))
    return 0


def _add_server_options(p: argparse.ArgumentParser) -> None:
    p.add_argument("--host", help="Primary RADIUS server")
    p.add_argument("--port", type=int, help="Primary RADIUS port (default 1812)")
    p.add_argument("--secret", help="Primary shared secret (plain or encrypted)")
    p.add_argument("--secondary-host", dest="secondary_host")
    p.add_argument("--secondary-port", dest="secondary_port", type=int)
    p.add_argument("--secondary-secret", dest="secondary_secret")
    p.add_argument("--nas-identifier", dest="nas_identifier")
    p.add_argument("--timeout-ms", dest="timeout_ms", type=int)
    p.add_argument("--retries", type=int)
    p.add_argument("--auth-method", dest="auth_method", choices=["mschapv2", "pap"])
    p.add_argument(
        "--no-message-authenticator",
        dest="no_message_authenticator",
        action="store_true",
        help="Do not send Message-Authenticator",
    )


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="nps-auth", description="RADIUS/NPS login client"
    )
    p.add_argument(
        "--config",
        "-c",
        default=os.environ.get("NPS_AUTH_CONFIG"),
        help="Path to INI config file with a [radius] section",
    )
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub_login = sub.add_parser("login", help="Authenticate a user (with failover)")
    sub_login.add_argument("username")
    sub_login.add_argument("--password", help="Password (prompt if omitted)")
    sub_login.add_argument(
        "--stdin", action="store_true", help="Read password from stdin (single line)"
    )
    sub_login.add_argument(
        "--require-mutual-auth",
        dest="require_mutual_auth",
        action="store_true",
        help="Fail unless the server proves knowledge of the password",
    )
    _add_server_options(sub_login)
    sub_login.set_defaults(func=cmd_login)

    sub_probe = sub.add_parser("probe", help="Check server reachability and secret")
    _add_server_options(sub_probe)
    sub_probe.set_defaults(func=cmd_probe)

    sub_enc = sub.add_parser(
        "encrypt-secret", help="Encrypt a shared secret for storage (SESSION_SECRET)"
    )
    sub_enc.add_argument("--secret", help="Secret (prompt if omitted)")
    sub_enc.set_defaults(func=cmd_encrypt_secret)
    return p


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure(level=logging.DEBUG if args.debug else logging.WARNING)
    try:
        return int(args.func(args))
    except NpsAuthError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
