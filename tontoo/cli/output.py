"""Console output helpers for CLI commands."""

from typing import Mapping


def print_success(message: str) -> None:
    """
    Print success message with checkmark prefix.

    Examples:
        >>> print_success("Build successful")
        ✓ Build successful
    """
    print(f"✓ {message}")


def print_info(message: str) -> None:
    print(f"ℹ {message}")


def print_table(rows: Mapping[str, str]) -> None:
    """Print ``key: value`` pairs with the keys aligned."""
    width = max((len(key) for key in rows), default=0)
    for key, value in rows.items():
        print(f"  {key.ljust(width)}  {value}")
