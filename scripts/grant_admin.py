"""Grant (or revoke) admin dashboard access for an existing account."""

import argparse

from postmaker.core.config import Settings
from postmaker.infrastructure.persistence.sqlite import SQLitePersistence


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("email")
    parser.add_argument("--revoke", action="store_true", help="remove admin access instead")
    args = parser.parse_args()

    persistence = SQLitePersistence(Settings().database_path)
    try:
        user = persistence.get_user_by_email(args.email)
        if user is None:
            raise SystemExit(f"No account found for {args.email}")
        persistence.set_admin(user.id, not args.revoke)
    finally:
        persistence.close()
    print(f"{user.email}: admin={'no' if args.revoke else 'yes'}")


if __name__ == "__main__":
    main()
