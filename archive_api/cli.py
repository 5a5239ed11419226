from __future__ import annotations

from typing import Optional

import typer

from .db.session import SessionLocal
from .models import User, UserRole
from .services.admin import update_user_role
from .services.auth import AuthError, AuthService

app = typer.Typer(help="College document archive administrative CLI")


def _prompt_password(password: Optional[str]) -> str:
    if password:
        return password
    return typer.prompt("Password", hide_input=True, confirmation_prompt=True)


@app.command()
def create_user(
    email: str = typer.Argument(..., help="Login identifier (email or USN)"),
    name: str = typer.Argument(..., help="Display name"),
    role: UserRole = typer.Option(UserRole.STUDENT, "--role", "-r", case_sensitive=False, help="User role"),
    password: Optional[str] = typer.Option(None, "--password", "-p", help="Password (prompted when omitted)"),
) -> None:
    """Create a user. Accounts are provisioned here, not over HTTP."""
    db = SessionLocal()
    try:
        try:
            user = AuthService(db).create_user(email, name, _prompt_password(password), role)
        except AuthError as exc:
            db.rollback()
            typer.echo(f"Error: {exc}", err=True)
            raise typer.Exit(code=1)
        db.commit()
        typer.echo(f"Created {user.role.value} {user.email} (id={user.id})")
    finally:
        db.close()


@app.command()
def set_role(
    email: str = typer.Argument(..., help="Login identifier"),
    role: UserRole = typer.Argument(..., case_sensitive=False, help="New role"),
) -> None:
    """Change a user's role."""
    db = SessionLocal()
    try:
        user = AuthService(db).get_user_by_identifier(email)
        if user is None:
            typer.echo(f"Error: user {email} not found", err=True)
            raise typer.Exit(code=1)
        update_user_role(db, user.id, role)
        typer.echo(f"{user.email} is now {role.value}")
    finally:
        db.close()


@app.command()
def reset_password(
    email: str = typer.Argument(..., help="Login identifier"),
    password: Optional[str] = typer.Option(None, "--password", "-p", help="New password (prompted when omitted)"),
) -> None:
    """Set a new password for a user."""
    db = SessionLocal()
    try:
        service = AuthService(db)
        user = service.get_user_by_identifier(email)
        if user is None:
            typer.echo(f"Error: user {email} not found", err=True)
            raise typer.Exit(code=1)
        try:
            service.set_password(user, _prompt_password(password))
        except AuthError as exc:
            typer.echo(f"Error: {exc}", err=True)
            raise typer.Exit(code=1)
        db.commit()
        typer.echo(f"Password updated for {user.email}")
    finally:
        db.close()


@app.command()
def list_users() -> None:
    """Print every user, newest first."""
    db = SessionLocal()
    try:
        users = db.query(User).order_by(User.created_at.desc(), User.id.desc()).all()
        for user in users:
            typer.echo(f"{user.id}\t{user.role.value}\t{user.email}\t{user.name}")
    finally:
        db.close()


if __name__ == "__main__":
    app()
