from __future__ import annotations

import typer

from ...infra import db as db_module

app = typer.Typer(name="db", help="Database operations")


@app.command("init")
def init():
    """Create the tables from the models (development; production uses Alembic)."""
    db_module.init_schema()
    typer.echo("Schema created")
