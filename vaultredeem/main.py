from __future__ import annotations

import argparse
import sys

from vaultredeem.config import load_settings
from vaultredeem.domain import ValidationError
from vaultredeem.runtime.app import RunOptions, run_main


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="vaultredeem", description="Preview and execute a vault redemption.")
    p.add_argument("--user", required=True, help="wallet that redeems")
    p.add_argument("--token", required=True, help="token to redeem")
    p.add_argument("--amount", required=True, help='human amount, e.g. "12.5"')
    p.add_argument("--target", required=True, help="token to receive (stable or reference)")
    p.add_argument("--execute", action="store_true", help="run the plan after previewing it")
    p.add_argument("--yes", action="store_true", help="sign without asking for each transaction")
    p.add_argument("--env-file", default=None, help="dotenv file (default: $VAULT_ENV_FILE or ~/.vaultredeem.env)")
    return p


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    opts = RunOptions(
        user=args.user,
        token=args.token,
        amount=args.amount,
        target=args.target,
        execute=args.execute,
        assume_yes=args.yes,
    )
    try:
        settings = load_settings(args.env_file)
    except (ValidationError, ValueError) as e:
        print(f"config error: {e}", file=sys.stderr)
        return 2
    return run_main(settings, opts)


if __name__ == "__main__":
    sys.exit(main())
