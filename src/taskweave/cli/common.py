"""Shared CLI utilities - console, colors, helpers."""

import asyncio
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import ParamSpec, TypeVar

from rich.console import Console
from rich.table import Table

ELECTRIC_PURPLE = "#e135ff"
NEON_CYAN = "#80ffea"
ELECTRIC_YELLOW = "#f1fa8c"
SUCCESS_GREEN = "#50fa7b"
ERROR_RED = "#ff6363"

console = Console()

P = ParamSpec("P")
R = TypeVar("R")


def success(message: str) -> None:
    console.print(f"[{SUCCESS_GREEN}]✓[/{SUCCESS_GREEN}] {message}")


def error(message: str) -> None:
    console.print(f"[{ERROR_RED}]✗[/{ERROR_RED}] {message}")


def info(message: str) -> None:
    console.print(f"[{NEON_CYAN}]→[/{NEON_CYAN}] {message}")


def hint(message: str) -> None:
    console.print(f"[{ELECTRIC_YELLOW}]Hint:[/{ELECTRIC_YELLOW}] {message}")


def print_db_hint() -> None:
    """Print the common database hint."""
    hint("Is PostgreSQL running, and is TASKWEAVE_DATABASE_DSN set correctly?")


def create_table(title: str | None = None, *columns: str) -> Table:
    """Create a styled table; the first column is highlighted."""
    table = Table(title=title, border_style=NEON_CYAN)
    for i, col in enumerate(columns):
        table.add_column(col, style=ELECTRIC_PURPLE if i == 0 else NEON_CYAN)
    return table


def run_async(func: Callable[P, Awaitable[R]]) -> Callable[P, R]:
    """Decorator to run async functions in sync context (for Typer commands)."""

    @wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        return asyncio.run(func(*args, **kwargs))

    return wrapper


def format_status(status: str) -> str:
    """Format a task status with its board color."""
    status_colors = {
        "DRAFT": "dim",
        "ASSIGNED": NEON_CYAN,
        "IN_PROGRESS": ELECTRIC_PURPLE,
        "PAUSED": ELECTRIC_YELLOW,
        "REVIEW": ELECTRIC_YELLOW,
        "COMPLETED": SUCCESS_GREEN,
        "REJECTED": ERROR_RED,
    }
    color = status_colors.get(status.upper(), NEON_CYAN)
    return f"[{color}]{status}[/{color}]"
