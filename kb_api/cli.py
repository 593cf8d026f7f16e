from __future__ import annotations

import json
from typing import List, Optional

import typer

from .config import settings
from .db.session import SessionLocal
from .models import User, UserRoleEnum
from .services.auth import AuthService
from .services.batch import BatchAction, BatchError, Requester, run_batch
from .services.document_store import SqlDocumentStore

app = typer.Typer(help="Knowledge Base administrative CLI")


@app.command()
def create_user(
    email: str = typer.Argument(..., help="User email"),
    full_name: str = typer.Option("", "--full-name", "-f", help="Optional full name"),
    role: Optional[UserRoleEnum] = typer.Option(None, "--role", "-r", help="Account role (new users default to user)"),
) -> None:
    """Create a user, or update the role of an existing one."""
    db = SessionLocal()
    try:
        user = AuthService(db).get_or_create_user(email, full_name or None, role or UserRoleEnum.USER)
        if full_name:
            user.full_name = full_name
        if role is not None:
            user.role = role
        db.commit()
        typer.echo(f"User {user.email} ({user.id}) role={UserRoleEnum(user.role).value}")
    finally:
        db.close()


@app.command()
def issue_session(email: str = typer.Argument(..., help="Existing user email")) -> None:
    """Mint a session cookie for local testing."""
    db = SessionLocal()
    try:
        user = db.query(User).filter(User.email == email.strip().lower()).one_or_none()
        if user is None:
            typer.echo(f"No user with email {email}", err=True)
            raise typer.Exit(code=1)
        raw_token = AuthService(db).issue_session(user)
        typer.echo(f"{settings.cookie_name}={raw_token}")
    finally:
        db.close()


@app.command()
def batch(
    action: BatchAction = typer.Argument(..., help="Action applied to every document"),
    document_ids: List[str] = typer.Argument(..., help="Document ids"),
    as_email: str = typer.Option(..., "--as", help="Email of the admin running the batch"),
) -> None:
    """Run a batch action from the shell and print the JSON result."""
    db = SessionLocal()
    try:
        user = db.query(User).filter(User.email == as_email.strip().lower()).one_or_none()
        requester = Requester.from_user(user) if user else None
    finally:
        db.close()

    try:
        result = run_batch(
            requester,
            document_ids,
            action,
            store=SqlDocumentStore(),
            max_workers=settings.batch_max_workers,
            max_documents=settings.batch_max_documents,
        )
    except BatchError as exc:
        typer.echo(f"Batch rejected: {exc}", err=True)
        raise typer.Exit(code=2) from exc

    typer.echo(json.dumps(result.to_payload(), indent=2))
    if result.failed_count:
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
