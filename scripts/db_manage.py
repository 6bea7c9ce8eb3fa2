#!/usr/bin/env python
"""
StaffDesk - Database Management CLI

Usage:
    python -m scripts.db_manage check                    # Test database connection
    python -m scripts.db_manage migrate                  # Run pending migrations
    python -m scripts.db_manage rollback                 # Rollback last migration (debug only)
    python -m scripts.db_manage current                  # Show current migration version
    python -m scripts.db_manage history                  # Show migration history
    python -m scripts.db_manage reset                    # Drop all and recreate (debug only)
    python -m scripts.db_manage issue-session [username] # Issue an API session token
"""

import sys

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from staffdesk.config import get_settings
from staffdesk.database import check_connection, get_db_context


settings = get_settings()


def _alembic_config():
    from alembic.config import Config
    return Config("alembic.ini")


def cmd_check(args):
    """Test database connection."""
    target = settings.db_url or f"{settings.db_server}/{settings.db_name}"
    print(f"Connecting to: {target}")
    try:
        check_connection()
    except SQLAlchemyError as e:
        print(f"Connection failed: {e}")
        return False
    print("Connection successful!")
    return True


def cmd_migrate(args):
    """Run pending Alembic migrations."""
    from alembic import command

    print("Running migrations...")
    command.upgrade(_alembic_config(), "head")
    print("Migrations complete!")
    return True


def cmd_rollback(args):
    """Rollback the last migration."""
    if not settings.debug:
        print("ERROR: rollback is only available in debug mode")
        return False

    from alembic import command

    print("Rolling back last migration...")
    command.downgrade(_alembic_config(), "-1")
    print("Rollback complete!")
    return True


def cmd_current(args):
    """Show current migration version."""
    from alembic import command

    command.current(_alembic_config())
    return True


def cmd_history(args):
    """Show migration history."""
    from alembic import command

    command.history(_alembic_config())
    return True


def cmd_reset(args):
    """Drop all tables and recreate with migrations."""
    if not settings.debug:
        print("ERROR: reset is only available in debug mode")
        return False

    confirm = input("This will DELETE ALL DATA. Type 'yes' to confirm: ")
    if confirm.lower() != "yes":
        print("Aborted")
        return False

    from alembic import command

    alembic_cfg = _alembic_config()

    print("Rolling back all migrations...")
    try:
        command.downgrade(alembic_cfg, "base")
    except SQLAlchemyError as e:
        print(f"Rollback failed (maybe no tables exist): {e}")

    print("Running all migrations...")
    command.upgrade(alembic_cfg, "head")

    print("Reset complete!")
    return True


def cmd_issue_session(args):
    """
    Issue a session token for an employee.

    Used by the SSO hand-off and for local testing; the token goes in the
    staffdesk_session cookie or an "Authorization: Bearer" header.
    """
    from staffdesk.models.employee import Employee
    from staffdesk.services.auth import AuthService, AuthenticationError

    username = args[0] if args else input("Username: ").strip()
    if not username:
        print("Username required")
        return False

    with get_db_context() as db:
        employee = db.execute(
            select(Employee).where(Employee.username == username)
        ).scalar_one_or_none()

        if not employee:
            print(f"User '{username}' not found")
            return False

        try:
            session = AuthService(db).issue_session(employee.employee_id)
        except AuthenticationError as e:
            print(f"Cannot issue session: {e}")
            return False
        db.commit()

        print(f"Session for {employee.full_name} (expires {session.expires_at:%Y-%m-%d %H:%M} UTC):")
        print(session.session_token)

    return True


def cmd_help(args):
    """Show help."""
    print(__doc__)
    return True


COMMANDS = {
    "check": cmd_check,
    "migrate": cmd_migrate,
    "rollback": cmd_rollback,
    "current": cmd_current,
    "history": cmd_history,
    "reset": cmd_reset,
    "issue-session": cmd_issue_session,
    "help": cmd_help,
}


def main():
    if len(sys.argv) < 2:
        cmd_help([])
        sys.exit(1)

    command = sys.argv[1].lower()

    if command not in COMMANDS:
        print(f"Unknown command: {command}")
        cmd_help([])
        sys.exit(1)

    success = COMMANDS[command](sys.argv[2:])
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
