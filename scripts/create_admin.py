import argparse
import sys

from plantcards.auth import check_password_strength, hash_password
from plantcards.database import SessionLocal
from plantcards.models import Profile, User


def main():
    parser = argparse.ArgumentParser(description="Create an admin account or promote an existing one")
    parser.add_argument("--email", required=True, help="Account email")
    parser.add_argument("--password", help="Password for a new account (required when the account does not exist)")
    parser.add_argument("--display-name", help="Display name for a new account")

    args = parser.parse_args()
    email = args.email.strip().lower()

    session = SessionLocal()
    try:
        user = session.query(User).filter(User.email == email).first()
        if user is None:
            if not args.password:
                print(f"Error: no account for '{email}'; pass --password to create one.")
                return 1
            check_password_strength(args.password)
            user = User(email=email, password_hash=hash_password(args.password))
            session.add(user)
            session.flush()
            print(f"Created account {email}.")

        if user.profile is None:
            user.profile = Profile(id=user.id, display_name=args.display_name)
        user.profile.is_admin = True
        session.commit()

        print(f"\n✅ {email} is now an admin.")
        print(f"User id: {user.id}")
        return 0
    except ValueError as e:
        print(f"Error: {e}")
        session.rollback()
        return 1
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


if __name__ == "__main__":
    sys.exit(main())
