# reset_password.py
import argparse
import sys

from database import SessionLocal
from deps.auth import get_password_hash
from models import User


def reset_password(db, username: str, new_pw: str, force_change: bool = True) -> bool:
    user = db.query(User).filter(User.username == username).first()
    if not user:
        return False
    user.password_hash = get_password_hash(new_pw)
    user.needs_password_change = force_change
    db.commit()
    return True


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Reset a user's password (bcrypt)")
    parser.add_argument("username")
    parser.add_argument("new_password")
    parser.add_argument(
        "--no-force-change", action="store_true",
        help="do not ask the user to change the password at next login",
    )
    args = parser.parse_args(argv)

    db = SessionLocal()
    try:
        ok = reset_password(db, args.username, args.new_password, force_change=not args.no_force_change)
    finally:
        db.close()

    if not ok:
        print("❌ User not found")
        return 1
    print(f"✅ Password for '{args.username}' has been reset (bcrypt applied)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
