"""Database management commands."""

import typer

from taskweave.cli.common import error, info, print_db_hint, run_async, success

app = typer.Typer(
    name="db",
    help="Database operations",
    no_args_is_help=True,
)


@app.command("init")
def init_db_command() -> None:
    """Create any missing tables."""

    @run_async
    async def _init() -> bool:
        from taskweave.config import settings
        from taskweave.db import close_db, init_db

        info(f"Initializing schema ({settings.database_url.split('://', 1)[0]})")
        try:
            await init_db()
        except Exception as e:
            error(f"Schema initialization failed: {e}")
            print_db_hint()
            return False
        finally:
            await close_db()
        return True

    if not _init():
        raise typer.Exit(code=1)
    success("Database schema ready")


@app.command("health")
def health_command() -> None:
    """Check that the database answers a trivial query."""

    @run_async
    async def _check() -> bool:
        from taskweave.db import check_database_health, close_db

        try:
            return await check_database_health()
        finally:
            await close_db()

    if _check():
        success("Database reachable")
        return
    error("Database unreachable")
    print_db_hint()
    raise typer.Exit(code=1)
