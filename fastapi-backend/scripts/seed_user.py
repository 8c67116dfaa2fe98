"""Small script to seed a citizen, admin or municipality user for local testing.

Usage:
    python fastapi-backend/scripts/seed_user.py --username urp --password secret \
        --type municipality_user --role municipal_public_relations_officer
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Ensure the backend directory is importable when running from a checkout
ROOT = Path(__file__).resolve().parents[2]
sys.path.append(str(ROOT / "fastapi-backend"))

from participium.database import get_session, init_db
from participium.errors import AppError
from participium.repositories.users import SqlUserStore
from participium.roles import Role, UserType
from participium.users import UserService


async def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--username", required=True)
    parser.add_argument("--password", required=True)
    parser.add_argument("--email")
    parser.add_argument("--name")
    parser.add_argument("--surname")
    parser.add_argument("--type", default=UserType.CITIZEN.value, choices=[t.value for t in UserType])
    parser.add_argument("--role", action="append", default=[], choices=[r.value for r in Role])
    args = parser.parse_args()

    print("Initializing DB...")
    await init_db()

    print(f"Creating user {args.username}...")
    async for session in get_session():
        try:
            user = await UserService(SqlUserStore(session)).create_user(
                username=args.username,
                password=args.password,
                email=args.email,
                user_type=UserType(args.type),
                roles=[Role(r) for r in args.role],
                name=args.name,
                surname=args.surname,
            )
        except AppError as exc:
            print(f"Could not create user: {exc.message}")
            return 1
        print(f"Created user id={user.id} username={user.username} type={user.user_type} roles={args.role}")
        break
    return 0


if __name__ == "__main__":
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        pass
