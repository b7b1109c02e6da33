"""
imageferry - UI Components
Standardized headers and summary tables
"""

from typing import Optional, Sequence

from rich.console import Console
from rich.table import Table

BRAND_COLOR = "color(214)"


def show_header(
    title: str,
    subtitle: Optional[str] = None,
    details: Optional[dict] = None,
    console: Optional[Console] = None,
):
    """
    Display a standardized imageferry command header.

    Args:
        title: Main title (e.g., "Transfer Images")
        subtitle: Optional subtitle line
        details: Additional key-value pairs to display
        console: Rich Console instance (creates new if None)

    Example:
        show_header(
            title="Transfer Images",
            details={"Target": "alice@build01", "Images": "myapp:latest"}
        )
    """
    if console is None:
        console = Console()

    prefix = f" [bold {BRAND_COLOR}]imageferry[/bold {BRAND_COLOR}] [dim]›[/dim]"
    console.print(f"{prefix} [bold white]{title}[/bold white]")

    if subtitle:
        console.print(f"{prefix} [dim]{subtitle}[/dim]")

    if details:
        for key, value in details.items():
            console.print(f"{prefix} {key}: [cyan]{value}[/cyan]")

    console.print()


def transfer_summary_table(
    images: Sequence[str], registry_address: str, destination: str
) -> Table:
    """Table of transferred images and the references they travelled under."""
    table = Table(
        title="Transferred Images",
        show_header=True,
        title_justify="left",
        padding=(0, 1),
    )
    table.add_column("Image", style="cyan")
    table.add_column("Via", style="dim")
    table.add_column("Destination", style="green")

    for image in images:
        table.add_row(image, f"{registry_address}/{image}", destination)

    return table
