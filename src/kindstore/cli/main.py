"""kindstore CLI - Main entry point."""

import logging
from typing import Annotated

import typer

import kindstore
from kindstore.cli.context import CLIContext, get_database_url

app = typer.Typer(
    name="kindstore",
    help="kindstore CLI - CRUD over a hierarchical entity store",
    no_args_is_help=True,
)


@app.callback()
def main_callback(
    ctx: typer.Context,
    database: Annotated[
        str | None,
        typer.Option(
            "--database",
            "-d",
            envvar="KINDSTORE_URL",
            help="Database URL (PostgreSQL or SQLite)",
        ),
    ] = None,
    namespace: Annotated[
        str | None,
        typer.Option(
            "--namespace",
            "-n",
            envvar="KINDSTORE_NAMESPACE",
            help="Default namespace for all keys",
        ),
    ] = None,
    id_field: Annotated[
        str,
        typer.Option("--id-field", help="Record property holding the id"),
    ] = "id",
    auto_index: Annotated[
        bool,
        typer.Option("--auto-index", help="Exclude values over 1500 bytes from indexes"),
    ] = False,
    echo: Annotated[
        bool,
        typer.Option("--echo", "-e", help="Echo SQL statements to console"),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log debug output to stderr"),
    ] = False,
    json_output: Annotated[
        bool,
        typer.Option("--json", "-j", help="Output as JSON (machine-readable)"),
    ] = False,
) -> None:
    """Initialize CLI context with global options."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    ctx.obj = CLIContext(
        database_url=get_database_url(database),
        json_output=json_output,
        echo=echo,
        namespace=namespace,
        id_field=id_field,
        auto_index=auto_index,
    )


@app.command()
def version() -> None:
    """Show version information."""
    typer.echo(f"kindstore v{kindstore.__version__}")


# Register command groups
from kindstore.cli.commands import records  # noqa: E402

app.add_typer(records.app, name="record")


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
