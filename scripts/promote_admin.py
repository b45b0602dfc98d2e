"""
Grant or revoke the admin role for a registered user.

Registration always creates plain users; this is the only way to get an admin.

Usage:
  python scripts/promote_admin.py --email alice@example.com
  python scripts/promote_admin.py --email alice@example.com --role user
"""
import argparse
from typing import Optional, Sequence

from orderdesk import crud
from orderdesk.config import load_settings
from orderdesk.db import ensure_store_reachable, init_db, make_session_factory, select_backend
from orderdesk.errors import OrderDeskError
from orderdesk.log import setup_logging


def run(email: str, role: str, engine=None) -> int:
    if engine is None:
        engine = select_backend(load_settings()).create_engine()
    ensure_store_reachable(engine)
    init_db(engine)

    db = make_session_factory(engine)()
    try:
        user = crud.set_role(db, email, role)
    except OrderDeskError as e:
        print(f"error: {e.message}")
        return 1
    finally:
        db.close()
    print(f"{user.email} is now {user.role}")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser()
    parser.add_argument("--email", required=True, help="Email of a registered user")
    parser.add_argument("--role", choices=["admin", "user"], default="admin")
    args = parser.parse_args(argv)

    settings = load_settings()
    setup_logging(settings.log_level, settings.log_format)
    return run(args.email, args.role)


if __name__ == "__main__":
    raise SystemExit(main())
