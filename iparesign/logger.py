from rich.console import Console
from functools import lru_cache


@lru_cache(maxsize=1)
def get_console() -> Console:
    """Shared console for pipeline logs and command output.

    Log lines carry no source file and line.
    """
    return Console(log_path=False)
