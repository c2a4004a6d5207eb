import asyncio
import json
from pathlib import Path
import subprocess

from rich import print
from sqlalchemy.exc import SQLAlchemyError
import typer

from app.core.config import settings

app = typer.Typer()


async def init_db_task():
    """
    Create every table of the application on the database in ``DATABASE_URL``.

    Existing tables are left untouched, so the command can be run repeatedly.

    Raises:
        typer.Exit: If the tables could not be created.
    """
    from app.core.db import dispose_db, init_db

    print("[yellow]Creating database tables[/yellow]")
    try:
        await init_db()
        print("[green]Database tables created[/green]")
    except SQLAlchemyError as e:
        print(f"[red]Error creating database tables:[/red] {str(e)}")
        raise typer.Exit(1)
    finally:
        await dispose_db()


@app.command()
def initdb():
    """
    Creates the database tables.

    Usage:
        python manage.py initdb
    """
    asyncio.run(init_db_task())


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
def runconsumer():
    """
    Run the RabbitMQ consumer that delivers queued emails.
    """
    from app.infrastructure.messaging.main import main as consumer_main

    print("[cyan]Starting message consumer[/cyan]")
    asyncio.run(consumer_main())


@app.command()
def runbroker():
    """
    Run a local RabbitMQ broker in docker.
    """
    try:
        broker_command = "docker run -it --rm --name rabbitmq -p 5672:5672 -p 15672:15672 rabbitmq:4-management"
        print(f"Running RabbitMQ broker: {broker_command}")
        subprocess.run(broker_command, shell=True, check=True)
    except subprocess.CalledProcessError as e:
        print(f"[red]Error:[/red] {e}")
        raise


@app.command()
def generateopenapi():
    """
    Generates the OpenAPI schema for the FastAPI application and saves it to a JSON file.

    This function imports the FastAPI application, retrieves the OpenAPI schema,
    and writes it to ``openapi.json`` in the current directory.
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
