#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Family Chores (SQLite + FastAPI)

Commands:
  init                Create the database schema (idempotent)
  create-family       Create a family with its parent admin and print the family code
  generate            Materialize due recurring chores for every family (or one)
  backup              Write a JSON backup into the backup directory and rotate old ones
  serve               Run the HTTP API with uvicorn

Notes:
- Settings come from config.yaml (or CHORES_CONFIG) with CHORES_* environment overrides.
- `generate` is what the scheduler runs every morning; running it twice on one day is harmless.
"""

import argparse
import json
import logging
import os
import sys


def _setup_logging(verbose: bool):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _apply_config(args):
    if args.config:
        os.environ["CHORES_CONFIG"] = args.config


# ---------------- Commands ----------------

def cmd_init(args):
    from family_chores.db import ensure_schema, get_db_path
    ensure_schema()
    print(f"DB initialized at {get_db_path()}.")


def cmd_create_family(args):
    from family_chores.db import ensure_schema
    from family_chores.services.auth_svc import register_family
    ensure_schema()
    res = register_family(args.name, args.admin_name, args.admin_email, args.admin_password)
    user = res["user"]
    print(f"Family '{user['family_name']}' created. Family code: {user['family_code']}")


def cmd_generate(args):
    from family_chores.services import recurring_svc
    if args.family_id:
        res = recurring_svc.generate(family_id=args.family_id)
    else:
        res = recurring_svc.generate_all_families()
    print(json.dumps({
        "generated": len(res["generated"]),
        "skipped": len(res["skipped"]),
        "errors": res["errors"],
    }, ensure_ascii=False, indent=2))
    if res["errors"]:
        sys.exit(1)


def cmd_backup(args):
    from family_chores.services import backup_svc
    backup = backup_svc.create_backup("cli")
    print(f"Backup written: {backup['filename']} ({backup['size']} bytes)")


def cmd_serve(args):
    import uvicorn
    uvicorn.run("family_chores.api:app", host=args.host, port=args.port, reload=args.reload)


def main():
    parser = argparse.ArgumentParser(description="Family chores system (SQLite + FastAPI)")
    parser.add_argument("--config", default=None, help="path to config.yaml")
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers()

    p_init = sub.add_parser("init", help="create the database schema")
    p_init.set_defaults(func=cmd_init)

    p_fam = sub.add_parser("create-family", help="create a family and its admin parent")
    p_fam.add_argument("--name", required=True)
    p_fam.add_argument("--admin-email", required=True)
    p_fam.add_argument("--admin-password", required=True)
    p_fam.add_argument("--admin-name", required=False)
    p_fam.set_defaults(func=cmd_create_family)

    p_gen = sub.add_parser("generate", help="generate due recurring chores")
    p_gen.add_argument("--family-id", type=int, required=False)
    p_gen.set_defaults(func=cmd_generate)

    p_bak = sub.add_parser("backup", help="write a JSON backup")
    p_bak.set_defaults(func=cmd_backup)

    p_srv = sub.add_parser("serve", help="run the API server")
    p_srv.add_argument("--host", default="127.0.0.1")
    p_srv.add_argument("--port", type=int, default=8000)
    p_srv.add_argument("--reload", action="store_true")
    p_srv.set_defaults(func=cmd_serve)

    args = parser.parse_args()
    _setup_logging(args.verbose)
    _apply_config(args)
    if hasattr(args, "func"):
        args.func(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
