"""CLI for the ``societal_debt`` package.

A Typer console interface over :func:`societal_debt.api.analyze`. Environment
variables (notably ``OPENAI_API_KEY``) are loaded from a local ``.env`` using
``python-dotenv`` before delegating to command logic.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated, Any

import typer
from dotenv import load_dotenv
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from .logging_setup import configure_logging

app = typer.Typer(
    name="societal-debt",
    help="Attach societal-debt scores to financial transactions.",
    no_args_is_help=True,
)
err_console = Console(stderr=True)


def _load_transactions(path: Path) -> list[Any]:
    """Read a JSON list of transactions, or an object with a ``transactions`` list."""

    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("transactions")
    if not isinstance(data, list):
        raise ValueError("expected a JSON list or an object with a 'transactions' list")
    return data


def _print_summary(batch: Any) -> None:
    from .aggregation import impact_score, practice_totals

    table = Table(title="Societal debt by practice")
    table.add_column("Practice")
    table.add_column("Transactions", justify="right")
    table.add_column("Debt", justify="right")
    for row in practice_totals(batch.transactions):
        style = "red" if row.debt > 0 else "green"
        table.add_row(row.practice, str(row.transactions), f"[{style}]{row.debt:,.2f}[/{style}]")
    err_console.print(table)
    err_console.print(
        f"Total spend: {batch.total_spend:,.2f}  "
        f"Total debt: {batch.total_societal_debt:,.2f}  "
        f"Debt: {batch.debt_percentage:.2f}%  "
        f"Impact score: {impact_score(batch.transactions):g}"
    )


INPUT_ARGUMENT = typer.Argument(
    ...,
    help="JSON file with transactions to analyze",
    dir_okay=False,
    file_okay=True,
    exists=False,  # the handler reports missing files itself
)


@app.command("analyze")
def analyze_cmd(
    input_path: Annotated[Path, INPUT_ARGUMENT],
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Write the result JSON here.")
    ] = None,
    summary: Annotated[
        bool, typer.Option(help="Print a per-practice summary table to stderr.")
    ] = False,
) -> None:
    """Analyze transactions and print the resulting batch as JSON."""

    from .api import analyze
    from .errors import ClassifierTransportError

    try:
        raw = _load_transactions(input_path)
    except FileNotFoundError:
        err_console.print(f"[red]Error:[/red] File not found: {input_path}")
        raise typer.Exit(1)
    except (OSError, ValueError) as e:
        err_console.print(f"[red]Error:[/red] Failed to read '{input_path}': {e}")
        raise typer.Exit(1)

    try:
        batch = analyze(raw)
    except ValidationError as e:
        err_console.print(f"[red]Error:[/red] Invalid transactions: {e}")
        raise typer.Exit(1)
    except (ClassifierTransportError, ValueError, TypeError) as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    text = json.dumps(batch.to_wire(), ensure_ascii=False, indent=2)
    if output is not None:
        output.write_text(text + "\n", encoding="utf-8")
    else:
        typer.echo(text)

    if summary:
        _print_summary(batch)


@app.callback()
def _root() -> None:
    """Load ``.env`` from the working directory and configure logging."""

    # override=False keeps already-set environment variables
    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging()


if __name__ == "__main__":  # pragma: no cover
    app()
