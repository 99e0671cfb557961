#!/usr/bin/env python3
"""Operator console for TempSys authenticator secrets.

    tempsys-totp secret [--bytes 20] [--account alice]
    tempsys-totp code SECRET [--watch]
    tempsys-totp verify CODE SECRET [--skew 1]
"""
import argparse
import os
import time

from rich.console import Console
from rich.table import Table

from tempsys.totp import (
    TOTP_PERIOD, compute_hotp, counter_at, decode_base32,
    generate_secret, provisioning_uri, seconds_remaining, verify,
)

ISSUER = os.getenv("TOTP_ISSUER", "TempSys")

console = Console()


def build_code_table(secret, now=None):
    if now is None:
        now = time.time()
    key = decode_base32(secret)
    current = counter_at(now)

    table = Table(title="🔐 TempSys Authenticator Codes")
    for c in ["Window", "Counter", "Code", "Valid (s)"]:
        table.add_column(c)
    for label, offset in (("previous", -1), ("current", 0), ("next", 1)):
        counter = current + offset
        if counter < 0:
            continue
        valid = str(seconds_remaining(now)) if offset == 0 else "-"
        table.add_row(label, str(counter), compute_hotp(key, counter), valid)
    return table


def cmd_secret(args):
    secret = generate_secret(args.bytes)
    console.print(f"[bold cyan]Secret:[/bold cyan] {secret}", soft_wrap=True)
    if args.account:
        console.print(provisioning_uri(secret, args.account, ISSUER), soft_wrap=True, highlight=False)
    return 0


def cmd_code(args):
    if not decode_base32(args.secret):
        console.print("[red]Secret is empty after Base32 decoding.[/red]")
        return 2
    if not args.watch:
        console.print(build_code_table(args.secret))
        return 0
    try:
        while True:
            console.clear()
            console.print(build_code_table(args.secret))
            time.sleep(1)
    except KeyboardInterrupt:
        console.print("[red]Stopped by user.[/red]")
    return 0


def cmd_verify(args):
    if verify(args.code, args.secret, args.skew):
        console.print("[green]Code valid.[/green]")
        return 0
    console.print("[red]Code invalid.[/red]")
    return 1


def build_parser():
    parser = argparse.ArgumentParser(prog="tempsys-totp", description="TempSys TOTP helper")
    sub = parser.add_subparsers(dest="command", required=True)

    p_secret = sub.add_parser("secret", help="generate a new Base32 secret")
    p_secret.add_argument("--bytes", type=int, default=20)
    p_secret.add_argument("--account", help="also print the otpauth:// URI for this account")
    p_secret.set_defaults(func=cmd_secret)

    p_code = sub.add_parser("code", help=f"show codes for the {TOTP_PERIOD}s windows around now")
    p_code.add_argument("secret")
    p_code.add_argument("--watch", action="store_true")
    p_code.set_defaults(func=cmd_code)

    p_verify = sub.add_parser("verify", help="check a code against a secret")
    p_verify.add_argument("code")
    p_verify.add_argument("secret")
    p_verify.add_argument("--skew", type=int, default=1)
    p_verify.set_defaults(func=cmd_verify)
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
