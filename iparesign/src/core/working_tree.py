import shutil
import uuid
from pathlib import Path
from typing import Optional

from iparesign.logger import get_console
from iparesign.src.constants.bundle_layout import SCRATCH_PREFIX
from iparesign.src.core.errors import ScratchAllocationFailed


class WorkingTree:
    """Private scratch directory for one re-signing run.

    Created on enter and removed on every exit path. Removal problems are
    logged and never replace the error that ended the run.
    """

    def __init__(self, base_dir: Path):
        self.base_dir = Path(base_dir)
        self.root: Optional[Path] = None
        self.console = get_console()

    def __enter__(self) -> "WorkingTree":
        root = self.base_dir / f"{SCRATCH_PREFIX}{uuid.uuid4().hex}"
        try:
            root.mkdir(parents=True)
        except OSError as e:
            raise ScratchAllocationFailed(
                f"Failed to create working directory {root}", str(e)
            )
        self.root = root
        self.console.log(f"[blue]Working directory:[/] {root}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.cleanup()
        return False

    def cleanup(self) -> None:
        if not self.root:
            return
        try:
            shutil.rmtree(self.root)
            self.console.log("[green]Cleaned up working directory[/]")
        except OSError as e:
            self.console.log(f"[yellow]Failed to remove working directory {self.root}:[/] {e}")
        finally:
            self.root = None
