import subprocess
from pathlib import Path
from typing import Dict, Optional, Sequence, Union

from iparesign.logger import get_console

# Shell conventions for "command not found" and "timed out"
EXIT_NOT_FOUND = 127
EXIT_TIMEOUT = 124


def decode_output(b: Optional[bytes]) -> str:
    """Clean up command output"""
    return "" if not b else b.decode("utf-8", errors="replace").strip()


class ToolRunner:
    """Runs external tools and hands back their exit status and output.

    Non-zero exits are returned, not raised, so every stage can map a failure
    to its own error type. A missing executable or a timeout is reported the
    same way with a synthetic exit code.
    """

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout
        self.console = get_console()

    def run(
        self,
        cmd: Sequence[Union[str, Path]],
        cwd: Optional[Path] = None,
        env: Optional[Dict[str, str]] = None,
    ) -> subprocess.CompletedProcess:
        args = [str(c) for c in cmd]
        self.console.log(f"[cyan]Running:[/] {' '.join(args)}")
        try:
            return subprocess.run(
                args,
                cwd=str(cwd) if cwd else None,
                env=env,
                capture_output=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            return subprocess.CompletedProcess(
                args, EXIT_NOT_FOUND, b"", f"{args[0]}: {e}".encode()
            )
        except subprocess.TimeoutExpired as e:
            return subprocess.CompletedProcess(
                args,
                EXIT_TIMEOUT,
                e.stdout or b"",
                f"{args[0]} timed out after {self.timeout}s".encode(),
            )
