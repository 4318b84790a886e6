import argparse
import logging
import sys
from typing import Optional

from auth import issue_session_token
from database import session_scope
from services import CategoryService

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def seed_categories() -> int:
    with session_scope() as session:
        return CategoryService(session).seed_defaults()


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Expenses dashboard admin tasks")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("categories", help="insert the default categories")
    token = sub.add_parser("token", help="mint a session token for a user id")
    token.add_argument("user_id")
    token.add_argument("--email")
    args = parser.parse_args(argv)

    if args.command == "categories":
        created = seed_categories()
        logger.info(f"Categories seeded successfully: created={created}")
    elif args.command == "token":
        print(issue_session_token(args.user_id, args.email))
    return 0


if __name__ == "__main__":
    sys.exit(main())
