import threading
from pathlib import Path
from typing import Optional

from iparesign.src.core.models import ResignRequest
from iparesign.src.core.process import ToolRunner
from iparesign.src.core.resigner import QueueProgressSink, Resigner
from iparesign.src.utils.config_loader import ResignConfig


class ResignJob:
    """Runs one Resigner on a background thread.

    Progress messages land in ``events``; ``wait`` hands back the output path
    or re-raises whatever stopped the pipeline.
    """

    def __init__(
        self,
        request: ResignRequest,
        config: Optional[ResignConfig] = None,
        runner: Optional[ToolRunner] = None,
    ):
        self.sink = QueueProgressSink()
        self.events = self.sink.events
        self._resigner = Resigner(request, config, runner, progress=self.sink)
        self._result: Optional[Path] = None
        self._error: Optional[BaseException] = None
        self._thread = threading.Thread(target=self._run, name="iparesign-job", daemon=True)

    def _run(self) -> None:
        try:
            self._result = self._resigner.run()
        except BaseException as e:
            self._error = e

    def start(self) -> "ResignJob":
        self._thread.start()
        return self

    @property
    def done(self) -> bool:
        return self._thread.ident is not None and not self._thread.is_alive()

    def wait(self, timeout: Optional[float] = None) -> Path:
        self._thread.join(timeout)
        if self._thread.is_alive():
            raise TimeoutError(f"Re-signing did not finish within {timeout}s")
        if self._error is not None:
            raise self._error
        return self._result


def start_resign(
    request: ResignRequest,
    config: Optional[ResignConfig] = None,
    runner: Optional[ToolRunner] = None,
) -> ResignJob:
    """Start re-signing in the background and return the running job"""
    return ResignJob(request, config, runner).start()
