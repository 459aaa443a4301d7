"""Rich rendering for the command line: one shared Console and the track table."""

from typing import Any, Iterable, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

_console: Console | None = None


def get_console() -> Console:
    """Get or create the shared Rich Console."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def format_duration(seconds: Optional[float]) -> str:
    """Render seconds as m:ss; empty for unknown durations."""
    if not seconds:
        return ""
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}:{secs:02d}"


def track_table(rows: Iterable[dict[str, Any]]) -> Table:
    """Build the collection table.

    Args:
        rows: Dicts with key, key_color, tempo, title, artist, duration and id

    Returns:
        Table with the key column colored by its Camelot position
    """
    table = Table(show_header=True, header_style="bold")
    table.add_column("Key")
    table.add_column("BPM", justify="right")
    table.add_column("Title")
    table.add_column("Artist")
    table.add_column("Time", justify="right")
    table.add_column("ID", style="dim")

    for row in rows:
        key = row.get("key") or ""
        tempo = row.get("tempo")
        table.add_row(
            f"[{row['key_color']}]{escape(str(key))}[/]" if key else "",
            f"{tempo:g}" if isinstance(tempo, (int, float)) else "",
            escape(str(row["title"])),
            escape(str(row.get("artist") or "")),
            format_duration(row.get("duration")),
            row["id"],
        )
    return table


def print_table(table: Table, caption: Optional[str] = None) -> None:
    """Print a table, followed by a dimmed caption line."""
    console = get_console()
    console.print(table)
    if caption:
        console.print(caption, style="dim")
