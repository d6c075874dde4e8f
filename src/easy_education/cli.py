"""CLI entry point for easy-education."""

import asyncio

import typer
import uvicorn

from easy_education import __version__
from easy_education.core.config import settings

app = typer.Typer(
    name="easy-education",
    help="Easy Education online course platform server",
    no_args_is_help=True,
)


@app.command()
def serve(
    host: str = typer.Option(None, help="Host to bind to (overrides config)"),
    port: int = typer.Option(None, help="Port to bind to (overrides config)"),
    reload: bool = typer.Option(False, help="Enable auto-reload for development"),
) -> None:
    """Start the web server.

    Example:
        easy-education serve
        easy-education serve --host 0.0.0.0 --port 8080 --reload
    """
    uvicorn.run(
        "easy_education.app:app",
        host=host or settings.api_host,
        port=port or settings.api_port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


@app.command()
def version() -> None:
    """Show version information."""
    typer.echo(f"easy-education v{__version__}")


async def _promote(uid: str) -> bool:
    from easy_education.core.database import close_database, get_session
    from easy_education.models.user import User, UserRole

    try:
        async with get_session() as session:
            user = await session.get(User, uid)
            if user is None:
                return False
            user.role = UserRole.ADMIN.value
        return True
    finally:
        await close_database()


@app.command("promote-admin")
def promote_admin(uid: str = typer.Argument(..., help="Firebase uid of the user")) -> None:
    """Grant the admin role to a user who has signed in at least once."""
    if not asyncio.run(_promote(uid)):
        typer.echo(f"No user with uid {uid}. They must sign in once first.", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"{uid} is now an admin. They need to sign in again.")


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
