# backend/gestimmo/cli/__main__.py
from __future__ import annotations

import argparse

from gestimmo.cli.seed import seed_user


def main() -> None:
    p = argparse.ArgumentParser(prog="gestimmo")
    p.add_argument("--email", default="admin@gestimmo.local")
    p.add_argument("--password", required=True)
    p.add_argument("--full-name", default="Administrateur")
    p.add_argument("--role", default="admin", choices=["admin", "manager", "staff", "tenant"])
    args = p.parse_args()

    out = seed_user(email=args.email, password=args.password, full_name=args.full_name, role=args.role)
    print({"ok": True, "user_id": out.user_id, "email": out.email, "created": out.created})


if __name__ == "__main__":
    main()
