"""Output formatting for CLI commands."""

import json
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from kindstore.exceptions import KindStoreError

console = Console()


def _to_json(data: Any) -> str:
    return json.dumps(data, default=str, indent=2)


class OutputFormatter:
    """Formats output for terminal or JSON mode."""

    def __init__(self, json_mode: bool = False) -> None:
        """Initialize formatter.

        Args:
            json_mode: If True, output JSON instead of Rich formatting
        """
        self.json_mode = json_mode

    def print_records(self, title: str, records: list[dict[str, Any]], id_field: str = "id") -> None:
        """Print records as a Rich table or a JSON array.

        The id column comes first, then every other field in order of first
        appearance.
        """
        if self.json_mode:
            print(_to_json(records))
            return

        columns = [id_field]
        for record in records:
            for name in record:
                if name not in columns:
                    columns.append(name)

        table = Table(title=title, show_header=True, header_style="bold magenta")
        for col in columns:
            table.add_column(col)
        for record in records:
            table.add_row(*[str(record.get(col, "")) for col in columns])
        console.print(table)

    def print_record(self, record: dict[str, Any] | None) -> None:
        """Print a single record."""
        if self.json_mode:
            print(_to_json(record))
        elif record is None:
            console.print("(none)", style="dim")
        else:
            table = Table(show_header=False)
            table.add_column("Field", style="bold cyan")
            table.add_column("Value")
            for name, value in record.items():
                table.add_row(name, str(value))
            console.print(table)

    def print_success(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Print success message.

        Args:
            message: Success message
            details: Optional details to display
        """
        if self.json_mode:
            output = {"success": True, "message": message}
            if details:
                output.update(details)
            print(_to_json(output))
        else:
            console.print(f"✓ {message}", style="green")
            if details:
                for key, value in details.items():
                    console.print(f"  {key}: {value}", style="dim")

    def print_error(self, error: Exception) -> None:
        """Print error message.

        Args:
            error: Exception to display
        """
        if self.json_mode:
            if isinstance(error, KindStoreError):
                print(_to_json(error.to_dict()))
            else:
                print(_to_json({"error": str(error)}))
        else:
            error_text = str(error)
            # For KindStoreError, include context if available
            if isinstance(error, KindStoreError) and error.context:
                context_str = "\n".join(f"{k}: {v}" for k, v in error.context.items())
                error_text = f"{error_text}\n\n{context_str}"

            panel = Panel(
                error_text,
                title="[red]Error[/red]",
                border_style="red",
            )
            console.print(panel)
