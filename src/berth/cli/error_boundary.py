"""Error boundary handling for CLI commands.

Catches well-known exceptions at CLI entry points and prints a clean
message instead of a stack trace.
"""

import functools
from collections.abc import Callable
from typing import Any, TypeVar

import click

from berth.errors import BerthError

T = TypeVar("T", bound=Callable[..., Any])


def cli_error_boundary(func: T) -> T:
    """Decorator that turns known failures into "Error: ..." and exit code 1.

    Catches:
        - BerthError: Unreachable Consul at startup, every source failing
        - FileNotFoundError: Missing sources file
        - ValueError: Malformed sources file or duplicate source indexes

    All other exceptions bubble up normally with full stack traces.
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except (BerthError, FileNotFoundError, ValueError) as e:
            click.echo(f"Error: {e}", err=True)
            raise SystemExit(1) from None

    return wrapper  # type: ignore[return-value]
