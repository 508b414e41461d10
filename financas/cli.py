from __future__ import annotations

import typer

from financas.agenda.cli import agenda_app

app = typer.Typer(help="Financas CLI")
app.add_typer(agenda_app, name="agenda")


if __name__ == "__main__":
    app()
