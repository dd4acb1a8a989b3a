#!/usr/bin/env python3
"""
Management CLI - migrations, seed data, admin bootstrap, import/export
"""

import sys
from datetime import datetime, timezone
from pathlib import Path

from axiss_nav.config import configure_logging
from axiss_nav.db import SessionLocal
from axiss_nav.migrations import MigrationError
from axiss_nav.migrations_registry import migration_runner
from axiss_nav.maintenance import (
    seed, create_admin, clean, export_user_links, import_user_links, MaintenanceError,
)
from axiss_nav.transfer import ImportFormatError, FORMATS, export_filename

USAGE = """Axiss Nav management CLI

Usage: python manage.py <command> [args]

Commands:
  migrate [version]                          - Run pending migrations (or up to a specific version)
  rollback <version>                         - Roll back to a version (0 rolls back everything)
  status                                     - Show migration status
  history                                    - Show all known migrations
  seed                                       - Create demo users and links
  init-admin <username> <email> <password>   - Create the admin account
  clean                                      - Delete all links, tags, categories and non-admin users
  export <user> [json|markdown] [output]     - Export a user's links to a file
  import <user> <file> [json|markdown]       - Import links from a file

Examples:
  python manage.py migrate
  python manage.py rollback 002
  python manage.py export admin markdown
"""


def cmd_migrate(args):
    applied = migration_runner.migrate(args[0] if args else None)
    if not applied:
        print("✅ No pending migrations")
        return
    for version in applied:
        print(f"   ✅ Applied {version}")
    print("✅ All migrations completed successfully")


def cmd_rollback(args):
    if not args:
        print("❌ Error: rollback requires a target version")
        sys.exit(1)
    rolled = migration_runner.downgrade(args[0])
    if not rolled:
        print("✅ No migrations to rollback")
        return
    for version in rolled:
        print(f"   🔄 Rolled back {version}")
    print("✅ Rollback completed successfully")


def cmd_status(args):
    status = migration_runner.status()
    print("📋 Migration Status:")
    print(f"   Applied: {len(status['applied'])}")
    print(f"   Pending: {len(status['pending'])}")
    for version in status["pending"]:
        print(f"   ⏳ {version}")


def cmd_history(args):
    print("📚 Available migrations:")
    for m in migration_runner.history():
        applied = "✅" if m["applied"] else "⏳"
        rollback = "🔄" if m["reversible"] else "❌"
        print(f"   {applied} {m['version']}: {m['name']} (rollback: {rollback})")


def cmd_seed(args):
    migration_runner.migrate()
    with SessionLocal() as db:
        result = seed(db)
    print(f"🌱 Users: {', '.join(result['users'])}")
    print(f"🌱 Links created: {result['links_created']}")


def cmd_init_admin(args):
    if len(args) < 3:
        print("Usage: python manage.py init-admin <username> <email> <password>")
        sys.exit(1)
    migration_runner.migrate()
    with SessionLocal() as db:
        admin = create_admin(db, args[0], args[1], args[2])
        print(f"🔑 Admin created: {admin.username} <{admin.email}>")
        print(f"   API key: {admin.api_key}")


def cmd_clean(args):
    with SessionLocal() as db:
        counts = clean(db)
    for name, n in counts.items():
        print(f"   🧹 {name}: {n} deleted")
    print("✅ Admin users were kept")


def cmd_export(args):
    if not args:
        print("Usage: python manage.py export <user> [json|markdown] [output]")
        sys.exit(1)
    fmt = args[1] if len(args) > 1 else "json"
    if fmt not in FORMATS:
        print(f"❌ Unsupported format: {fmt}")
        sys.exit(1)
    output = Path(args[2]) if len(args) > 2 else Path(export_filename(fmt, datetime.now(timezone.utc)))
    with SessionLocal() as db:
        content = export_user_links(db, args[0], fmt)
    output.write_text(content, encoding="utf-8")
    print(f"📦 Exported to {output}")


def cmd_import(args):
    if len(args) < 2:
        print("Usage: python manage.py import <user> <file> [json|markdown]")
        sys.exit(1)
    path = Path(args[1])
    fmt = args[2] if len(args) > 2 else ("markdown" if path.suffix in (".md", ".markdown") else "json")
    with SessionLocal() as db:
        result = import_user_links(db, args[0], path.read_text(encoding="utf-8"), fmt)
    print(f"📥 Imported {result['imported']} of {result['total']} link(s)")
    for err in result["errors"]:
        print(f"   ⚠️  {err}")


COMMANDS = {
    "migrate": cmd_migrate,
    "rollback": cmd_rollback,
    "status": cmd_status,
    "history": cmd_history,
    "seed": cmd_seed,
    "init-admin": cmd_init_admin,
    "clean": cmd_clean,
    "export": cmd_export,
    "import": cmd_import,
}


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    if not argv or argv[0] not in COMMANDS:
        if argv:
            print(f"❌ Unknown command: {argv[0]}")
        print(USAGE)
        sys.exit(1)

    configure_logging()
    try:
        COMMANDS[argv[0]](argv[1:])
    except (MigrationError, MaintenanceError, ImportFormatError) as e:
        print(f"❌ {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
