#!/usr/bin/env python3
"""
Database management script for the time ledger.
Handles migrations and direct table creation.
"""

import sys
from pathlib import Path

from alembic.config import Config
from alembic import command

ALEMBIC_INI = Path(__file__).parent / "timeledger" / "infrastructure" / "db" / "migrations" / "alembic.ini"


def alembic_config() -> Config:
    return Config(str(ALEMBIC_INI))


def create_migration(message: str = "Auto-generated migration"):
    """Create a new migration."""
    print(f"Creating migration: {message}")
    command.revision(alembic_config(), message=message, autogenerate=True)


def run_migrations():
    """Run pending migrations."""
    print("Running migrations...")
    command.upgrade(alembic_config(), "head")


def rollback_migration():
    """Rollback last migration."""
    print("Rolling back migration...")
    command.downgrade(alembic_config(), "-1")


def reset_database():
    """Reset database - WARNING: This will drop all data!"""
    response = input("This will drop ALL data. Type 'yes' to continue: ")
    if response.lower() == 'yes':
        alembic_cfg = alembic_config()
        print("Resetting database...")
        command.downgrade(alembic_cfg, "base")
        command.upgrade(alembic_cfg, "head")
    else:
        print("Database reset cancelled.")


def show_current_revision():
    """Show current database revision."""
    command.current(alembic_config())


def show_history():
    """Show migration history."""
    command.history(alembic_config())


def create_tables():
    """Create tables straight from the models, without migrations."""
    from timeledger.infrastructure.db.database import create_tables as create_all

    print("Creating tables...")
    create_all()


COMMANDS = {
    "migrate": run_migrations,
    "rollback": rollback_migration,
    "reset": reset_database,
    "current": show_current_revision,
    "history": show_history,
    "create-tables": create_tables,
}


def main():
    """Main CLI function."""
    if len(sys.argv) < 2:
        print("Usage: python manage_db.py [command]")
        print("Commands:")
        print("  create [msg]   - Create new migration")
        print("  migrate        - Run pending migrations")
        print("  rollback       - Rollback last migration")
        print("  reset          - Reset database (WARNING: drops all data)")
        print("  current        - Show current revision")
        print("  history        - Show migration history")
        print("  create-tables  - Create tables without migrations")
        return

    command_name = sys.argv[1]

    if command_name == "create":
        message = " ".join(sys.argv[2:]) if len(sys.argv) > 2 else "Auto-generated migration"
        create_migration(message)
    elif command_name in COMMANDS:
        COMMANDS[command_name]()
    else:
        print(f"Unknown command: {command_name}")
        sys.exit(1)


if __name__ == "__main__":
    main()
