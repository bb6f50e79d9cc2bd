# ABOUTME: Spinner-style progress display for long running CLI phases
# ABOUTME: Wraps a coroutine in a Rich status spinner unless JSON output was requested

from collections.abc import Awaitable
from typing import TypeVar

from rich.console import Console

T = TypeVar("T")


async def run_with_status(
    console: Console,
    operation: Awaitable[T],
    message: str = "📜 Working through the archives...",
    json_output: bool = False,
) -> T:
    """Await an operation while showing a spinner.

    Args:
        console: Rich console instance
        operation: Awaitable to run
        message: Spinner description
        json_output: Skip the spinner entirely when True

    Returns:
        Whatever the awaitable returns
    """
    if json_output:
        return await operation

    with console.status(message, spinner="dots"):
        return await operation
