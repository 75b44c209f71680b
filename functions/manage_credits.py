# functions/manage_credits.py
"""
Operator tool for inspecting and topping up credit balances.

Runs with Application Default Credentials, outside the callable surface:

    python manage_credits.py list --limit 10
    python manage_credits.py add <uid> 25
"""
import argparse
import logging
import sys
from typing import List, Optional

from dotenv import load_dotenv

from firebase.credits import add_credits, list_users
from utils.logging_config import get_logger, setup_cloud_logging

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Inspect and top up user credit balances")
    subparsers = parser.add_subparsers(dest="command", required=True)

    list_parser = subparsers.add_parser("list", help="List users and their balances")
    list_parser.add_argument("--limit", type=int, default=10)

    add_parser = subparsers.add_parser("add", help="Add credits to a user")
    add_parser.add_argument("uid")
    add_parser.add_argument("credits", type=int)

    return parser


def main(argv: Optional[List[str]] = None, db=None) -> int:
    args = build_parser().parse_args(argv)

    if args.command == "list":
        users = list_users(limit=args.limit, db=db)
        if not users:
            print("No users found")
        for user in users:
            print(f"{user['userId']}: {user['credits']} credits (premium={user['premium']})")
        return 0

    if args.credits <= 0:
        print("credits must be a positive integer", file=sys.stderr)
        return 2

    total, created = add_credits(args.uid, args.credits, db=db)
    if created:
        print(f"Created user {args.uid} with {total} credits")
    else:
        print(f"Added {args.credits} credits to {args.uid}. New total: {total}")
    return 0


def cli() -> None:
    load_dotenv()
    setup_cloud_logging(level=logging.WARNING)
    sys.exit(main())


if __name__ == "__main__":
    cli()
