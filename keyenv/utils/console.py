from typing import Any

from rich.console import Console
from rich.table import Table

console = Console()

MASK = "•" * 8


def print_success(message: str) -> None:
    console.print(f"[green]✓[/green] {message}")


def print_error(message: str) -> None:
    console.print(f"[red]✗[/red] {message}", style="red")


def print_warning(message: str) -> None:
    console.print(f"[yellow]![/yellow] {message}", style="yellow")


def print_info(message: str) -> None:
    console.print(f"[blue]ℹ[/blue] {message}")


def _timestamp(value: Any, fmt: str = "%Y-%m-%d %H:%M") -> str:
    return value.strftime(fmt) if value is not None else ""


def create_secrets_table(secrets: list[Any], show_values: bool = False) -> Table:
    """Table of secrets; works for listings (no values) and exports."""
    table = Table(show_header=True, header_style="bold magenta")

    table.add_column("Key", style="cyan", no_wrap=False)
    table.add_column("Value", style="green" if show_values else "dim")
    table.add_column("Inherited From", style="blue")
    table.add_column("Version", justify="right", style="yellow")
    table.add_column("Updated", style="dim")

    for secret in secrets:
        value = getattr(secret, "value", None)
        if value is None:
            shown = ""
        elif show_values:
            shown = value
        else:
            shown = MASK

        table.add_row(
            secret.key,
            shown,
            getattr(secret, "inherited_from", None) or "",
            str(secret.version) if secret.version is not None else "",
            _timestamp(secret.updated_at),
        )

    return table


def create_history_table(history: list[Any]) -> Table:
    table = Table(show_header=True, header_style="bold magenta")

    table.add_column("Version", justify="right", style="yellow")
    table.add_column("Change", style="cyan")
    table.add_column("Changed By", style="blue")
    table.add_column("Created", style="dim")

    for entry in history:
        table.add_row(
            str(entry.version),
            entry.change_type or "",
            entry.changed_by or "unknown",
            _timestamp(entry.created_at, "%Y-%m-%d %H:%M:%S"),
        )

    return table


def create_permissions_table(permissions: list[Any]) -> Table:
    table = Table(show_header=True, header_style="bold magenta")

    table.add_column("User", style="cyan")
    table.add_column("Environment", style="blue")
    table.add_column("Role", style="yellow")
    table.add_column("Can Write", justify="center")

    for permission in permissions:
        table.add_row(
            permission.user_email or permission.user_id,
            permission.environment_name or permission.environment_id or "",
            permission.role,
            "✓" if permission.can_write else "",
        )

    return table


def create_projects_table(projects: list[Any]) -> Table:
    table = Table(show_header=True, header_style="bold magenta")

    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Environments", style="blue")
    table.add_column("Created", style="dim")

    for project in projects:
        table.add_row(
            project.id,
            project.name,
            ", ".join(env.name for env in project.environments),
            _timestamp(project.created_at),
        )

    return table
