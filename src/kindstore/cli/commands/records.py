"""Record CRUD commands."""

from collections.abc import Callable
from typing import Annotated, Any

import typer

from kindstore.cli.context import CLIContext
from kindstore.cli.output import OutputFormatter
from kindstore.cli.parsing import build_params, parse_json_object, read_records_file
from kindstore.core.service import RecordService

app = typer.Typer(help="Manage records of a kind (CRUD operations)")

KindArg = Annotated[str, typer.Argument(help="Kind (collection) name")]
QueryOpt = Annotated[
    str | None,
    typer.Option("--query", "-q", help='Filter query as JSON, e.g. \'{"age": {"$lte": 50}}\''),
]
SelectOpt = Annotated[
    list[str] | None,
    typer.Option("--select", "-s", help="Field to return (repeatable)"),
]
AncestorOpt = Annotated[
    str | None,
    typer.Option("--ancestor", "-a", help="Id of the ancestor record to scope under"),
]
DontIndexOpt = Annotated[
    list[str] | None,
    typer.Option("--dont-index", help="Field to exclude from indexes (repeatable)"),
]


def _run(ctx: typer.Context, action: Callable[[CLIContext, OutputFormatter], None]) -> None:
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)
    try:
        action(cli_ctx, formatter)
    except typer.Exit:
        raise
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
    finally:
        cli_ctx.close()


def _print_result(formatter: OutputFormatter, service: RecordService, title: str, result: Any) -> None:
    if isinstance(result, list):
        formatter.print_records(title, result, service.id_field)
    else:
        formatter.print_record(result)


@app.command("find")
def record_find(
    ctx: typer.Context,
    kind: KindArg,
    query: QueryOpt = None,
    select: SelectOpt = None,
    ancestor: AncestorOpt = None,
) -> None:
    """Find records matching a filter query.

    Examples:

        kindstore record find Person
        kindstore record find Person -q '{"children": {"$lte": 4}}' -s children
        kindstore record find Person --ancestor Bob
    """

    def action(cli_ctx: CLIContext, formatter: OutputFormatter) -> None:
        service = cli_ctx.service(kind)
        records = service.find(build_params(query, select=select, ancestor=ancestor))
        formatter.print_records(f"{kind} ({len(records)})", records, service.id_field)

    _run(ctx, action)


@app.command("get")
def record_get(
    ctx: typer.Context,
    kind: KindArg,
    record_id: Annotated[str, typer.Argument(help="Record id")],
    select: SelectOpt = None,
    ancestor: AncestorOpt = None,
) -> None:
    """Get a record by id.

    Examples:

        kindstore record get Person Bob
        kindstore record get Person 5629499534213120 -s age
    """

    def action(cli_ctx: CLIContext, formatter: OutputFormatter) -> None:
        service = cli_ctx.service(kind)
        formatter.print_record(
            service.get(record_id, build_params(select=select, ancestor=ancestor))
        )

    _run(ctx, action)


@app.command("create")
def record_create(
    ctx: typer.Context,
    kind: KindArg,
    data_json: Annotated[
        str | None,
        typer.Argument(help="Record data as JSON string"),
    ] = None,
    from_file: Annotated[
        str | None,
        typer.Option("--from-file", "-f", help="Load records from a JSON or JSONL file"),
    ] = None,
    ancestor: AncestorOpt = None,
    dont_index: DontIndexOpt = None,
    auto_index: Annotated[
        bool,
        typer.Option("--auto-index", help="Exclude values over 1500 bytes from indexes"),
    ] = False,
) -> None:
    """Create one record, or every record in a file in a single batch.

    Examples:

        kindstore record create Person '{"id": "Bob", "age": 44}' --dont-index age
        kindstore record create Person --from-file people.jsonl
    """

    def action(cli_ctx: CLIContext, formatter: OutputFormatter) -> None:
        service = cli_ctx.service(kind)
        params = build_params(
            ancestor=ancestor, dont_index=dont_index, auto_index=auto_index or None
        )
        data: Any
        if from_file:
            data = read_records_file(from_file)
        elif data_json:
            data = parse_json_object(data_json)
        else:
            raise typer.BadParameter("Either provide data as JSON string or use --from-file")

        result = service.create(data, params)
        if isinstance(result, list):
            formatter.print_success(
                f"Created {len(result)} records",
                {"count": len(result), "ids": [r[service.id_field] for r in result][:5]},
            )
        else:
            formatter.print_success("Created record", {"id": result[service.id_field]})

    _run(ctx, action)


@app.command("update")
def record_update(
    ctx: typer.Context,
    kind: KindArg,
    record_id: Annotated[str, typer.Argument(help="Record id")],
    data_json: Annotated[str, typer.Argument(help="Full record data as JSON string")],
    create: Annotated[
        bool,
        typer.Option("--create", help="Create the record if it does not exist (upsert)"),
    ] = False,
    ancestor: AncestorOpt = None,
    dont_index: DontIndexOpt = None,
) -> None:
    """Replace a record.

    Examples:

        kindstore record update Person Bob '{"age": 45}'
        kindstore record update Person Alice '{"age": 31}' --create
    """

    def action(cli_ctx: CLIContext, formatter: OutputFormatter) -> None:
        service = cli_ctx.service(kind)
        params = build_params(ancestor=ancestor, dont_index=dont_index, create=create)
        result = service.update(record_id, parse_json_object(data_json), params)
        formatter.print_success("Record updated", {"id": result[service.id_field]})
        if not cli_ctx.json_output:
            formatter.print_record(result)

    _run(ctx, action)


@app.command("patch")
def record_patch(
    ctx: typer.Context,
    kind: KindArg,
    data_json: Annotated[str, typer.Argument(help="Fields to merge as JSON string")],
    record_id: Annotated[
        str | None,
        typer.Option("--id", help="Record id (omit to patch every record matching --query)"),
    ] = None,
    query: QueryOpt = None,
    ancestor: AncestorOpt = None,
    dont_index: DontIndexOpt = None,
) -> None:
    """Merge fields into one record, or into every record matching a query.

    Examples:

        kindstore record patch Person '{"children": 3}' --id Bob
        kindstore record patch Person '{"tier": "gold"}' -q '{"age": {"$gte": 40}}'
    """

    def action(cli_ctx: CLIContext, formatter: OutputFormatter) -> None:
        service = cli_ctx.service(kind)
        params = build_params(query, ancestor=ancestor, dont_index=dont_index)
        result = service.patch(record_id, parse_json_object(data_json), params)
        _print_result(formatter, service, f"Patched {kind}", result)

    _run(ctx, action)


@app.command("remove")
def record_remove(
    ctx: typer.Context,
    kind: KindArg,
    record_id: Annotated[
        str | None,
        typer.Argument(help="Record id (omit to remove every record matching --query)"),
    ] = None,
    query: QueryOpt = None,
    ancestor: AncestorOpt = None,
    force: Annotated[
        bool,
        typer.Option("--force", help="Skip confirmation prompt for query removes"),
    ] = False,
) -> None:
    """Remove one record, or every record matching a query.

    Examples:

        kindstore record remove Person Bob
        kindstore record remove Person -q '{"children": 0}' --force
    """

    def action(cli_ctx: CLIContext, formatter: OutputFormatter) -> None:
        if record_id is None and not force and not cli_ctx.json_output:
            if not typer.confirm(f"Remove every {kind} record matching the query?"):
                typer.echo("Cancelled.")
                raise typer.Exit(code=0)

        service = cli_ctx.service(kind)
        result = service.remove(record_id, build_params(query, ancestor=ancestor))
        _print_result(formatter, service, f"Removed {kind}", result)

    _run(ctx, action)
