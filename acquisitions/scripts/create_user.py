"""
Create a user (e.g. first admin). Run from project root:
  python -m acquisitions.scripts.create_user NAME EMAIL PASSWORD [role]
Example:
  python -m acquisitions.scripts.create_user "Site Admin" admin@example.com your-secure-password admin
"""
import argparse
import sys

from pydantic import ValidationError

from acquisitions.core.database import SessionLocal
from acquisitions.schemas.auth import SignUpRequest
from acquisitions.services.auth import UserAlreadyExistsError, create_user


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create an Acquisitions API user.")
    parser.add_argument("name", help="Display name (2-255 chars)")
    parser.add_argument("email", help="Email address (unique)")
    parser.add_argument("password", help="Password (8-128 chars)")
    parser.add_argument("role", nargs="?", default="user", choices=["user", "admin"])
    args = parser.parse_args(argv)

    try:
        body = SignUpRequest(name=args.name, email=args.email, password=args.password, role=args.role)
    except ValidationError as e:
        for err in e.errors():
            field = ".".join(str(p) for p in err["loc"]) or "input"
            print(f"Invalid {field}: {err['msg']}", file=sys.stderr)
        return 1

    db = SessionLocal()
    try:
        user = create_user(db, body.name, body.email, body.password, body.role)
    except UserAlreadyExistsError:
        print(f"User '{body.email}' already exists.", file=sys.stderr)
        return 1
    finally:
        db.close()
    print(f"Created user '{user.email}' (id {user.id}) with role '{user.role}'.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
