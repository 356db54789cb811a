import asyncio
import json
import os
from pathlib import Path
import subprocess
from typing import Annotated

from rich import print

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine
import typer

from app.core.config import settings

app = typer.Typer()


async def clear_alembic_task():
    """
    Asynchronously clears the Alembic version history from the database.

    Connects to the database specified by the `DATABASE_URL` environment variable
    and deletes all rows from the `alembic_version` table, resetting Alembic's
    migration history. A missing table is reported and skipped.

    Raises:
        typer.Exit: If the `DATABASE_URL` environment variable is not set.
    """
    print("[yellow]Clearing Alembic version history[/yellow]")
    database_url = os.environ.get("DATABASE_URL")
    if not database_url:
        print("[red]Error: DATABASE_URL environment variable is not set[/red]")
        raise typer.Exit(1)

    engine = create_async_engine(database_url, echo=False)
    try:
        async with engine.connect() as connection:
            result = await connection.execute(text("DELETE FROM alembic_version"))
            await connection.commit()
            if result.rowcount > 0:
                print(
                    f"[green]Alembic version history cleared ({result.rowcount} rows)[/green]"
                )
            else:
                print("[cyan]Alembic version history is already empty[/cyan]")
    except SQLAlchemyError as e:
        print(f"[red]Error clearing Alembic version history:[/red] {str(e)}")
        if "alembic_version" in str(e):
            print("[cyan]alembic_version table does not exist; skipping clear[/cyan]")
        else:
            print(
                "[yellow]Skipping Alembic clear; leaving migration history unchanged[/yellow]"
            )
    finally:
        await engine.dispose()


async def create_tables_task() -> None:
    """
    Create every table in the model metadata on the configured database.

    Meant for local SQLite databases. Deployed databases use `migrate`.
    """
    from app.apps.image_resizer.db.models import ApiKey  # noqa: F401
    from app.core.db import dispose_db, init_db

    print(f"[yellow]Creating tables on {settings.DATABASE_URL}[/yellow]")
    try:
        await init_db()
    except SQLAlchemyError as e:
        print(f"[red]Error creating tables:[/red] {str(e)}")
        raise typer.Exit(1)
    finally:
        await dispose_db()
    print("[green]Tables created[/green]")


async def clear_cache_task(namespace: str) -> int:
    """
    Delete every response cache entry stored in Redis under ``namespace``.

    Returns:
        int: Number of keys deleted.
    """
    from app.core.services import RedisService

    await RedisService.init(settings.REDIS_URL)
    try:
        return await RedisService.delete_pattern(f"{namespace}*")
    finally:
        await RedisService.aclose()


@app.command()
def clearalembic():
    """
    Clears Alembic migration history by running the asynchronous clear_alembic_task function.

    Usage:
        clearalembic()
    """
    asyncio.run(clear_alembic_task())


@app.command()
def createtables():
    """
    Create database tables directly from the models, bypassing Alembic.

    Examples:
        python manage.py createtables
    """
    asyncio.run(create_tables_task())


@app.command()
def clearcache(
    namespace: Annotated[
        str,
        typer.Option(help="Redis key prefix of the response cache"),
    ] = settings.RESPONSE_CACHE_NAMESPACE,
):
    """
    Clear the shared (Redis) response cache.

    Only meaningful when RESPONSE_CACHE_BACKEND is "redis"; the in-memory
    cache lives and dies with each server process.

    Examples:
        python manage.py clearcache
        python manage.py clearcache --namespace "staging:cache:"
    """
    if settings.RESPONSE_CACHE_BACKEND != "redis":
        print(
            "[cyan]Response cache backend is in-memory; nothing to clear[/cyan]"
        )
        return

    deleted = asyncio.run(clear_cache_task(namespace))
    print(f"[green]Response cache cleared ({deleted} keys)[/green]")


@app.command()
def makemigrations(comment: Annotated[str, typer.Argument()] = "auto"):
    """
    Creates a new Alembic migration revision with an autogenerated migration script.

    Args:
        comment (str, optional): The message to use for the migration revision. Defaults to "auto".

    Raises:
        subprocess.CalledProcessError: If the Alembic command fails.
    """
    try:
        revision_command = f'alembic revision --autogenerate -m "{comment}"'
        print(f"Running Alembic migrations: {revision_command}")
        subprocess.run(revision_command, shell=True, check=True)
    except subprocess.CalledProcessError as e:
        print(f"[red]Error:[/red] {e}")
        raise
    print("[green]Make migrations complete[/green]")


@app.command()
def showmigrations():
    """
    Shows the current Alembic migration history.

    Raises:
        subprocess.CalledProcessError: If the Alembic command fails.
    """
    try:
        history_command = "alembic history"
        print(f"Running Alembic history: {history_command}")
        subprocess.run(history_command, shell=True, check=True)
    except subprocess.CalledProcessError as e:
        print(f"[red]Error:[/red] {e}")
        raise
    print("[green]Show migrations complete[/green]")


@app.command()
def migrate():
    """
    Runs the Alembic database migration to upgrade the schema to the latest version.

    This function executes the "alembic upgrade head" command using a subprocess.
    If the migration fails, it prints an error message; otherwise, it confirms successful migration.
    """
    try:
        upgrade_command = "alembic upgrade head"
        print(f"Running Alembic upgrade: {upgrade_command}")
        subprocess.run(upgrade_command, shell=True, check=True)
    except subprocess.CalledProcessError as e:
        print(f"[red]Error:[/red] {e}")
        raise
    print("[green]Migration complete[/green]")


@app.command()
def downgrade(revision: Annotated[str, typer.Argument()] = "-1"):
    """
    Reverts the database schema to an earlier Alembic revision.

    Args:
        revision (str, optional): Target revision. Defaults to "-1" (one step back).
    """
    try:
        downgrade_command = f"alembic downgrade {revision}"
        print(f"Running Alembic downgrade: {downgrade_command}")
        subprocess.run(downgrade_command, shell=True, check=True)
    except subprocess.CalledProcessError as e:
        print(f"[red]Error:[/red] {e}")
        raise
    print("[green]Downgrade complete[/green]")


@app.command()
def runserver():
    try:
        server_command = (
            "uvicorn app.main:app --host 127.0.0.1 --port 8000 --reload"
            if settings.DEBUG
            else "uvicorn app.main:app --host 0.0.0.0 --port 8000"
        )
        print(f"Running FastAPI server: {server_command}")
        subprocess.run(server_command, shell=True, check=True)
    except subprocess.CalledProcessError as e:
        print(f"[red]Error:[/red] {e}")
        raise


@app.command()
def generateopenapi():
    """
    Generates the OpenAPI schema for the FastAPI application and saves it to a JSON file.
    """
    from app.main import app

    openapi_path = Path("openapi.json")
    with openapi_path.open("w", encoding="utf-8") as f:
        json.dump(app.openapi(), f, ensure_ascii=False, indent=2)
    print(f"[green]OpenAPI schema generated at {openapi_path.name}[/green]")


@app.callback()
def main(ctx: typer.Context):
    print(f"Executing the command: {ctx.invoked_subcommand}")


if __name__ == "__main__":
    app()
