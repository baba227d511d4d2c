import queue
from pathlib import Path
from typing import Callable, Optional

from iparesign.logger import get_console
from iparesign.src.constants.bundle_layout import ENTITLEMENTS_FILE
from iparesign.src.core.errors import CertificateNotFound
from iparesign.src.core.identity_directory import IdentityDirectory
from iparesign.src.core.models import Milestone, ResignRequest
from iparesign.src.core.process import ToolRunner
from iparesign.src.core.signing_orchestrator import SigningOrchestrator
from iparesign.src.core.working_tree import WorkingTree
from iparesign.src.ipa.archive import extract_archive, locate_app_bundle, package_archive
from iparesign.src.ipa.bundle_mutator import (
    replace_provisioning_profile,
    update_bundle_identifier,
)
from iparesign.src.ipa.provisioning_profile import (
    get_profile_decoder,
    load_profile,
    write_entitlements,
)
from iparesign.src.utils.config_loader import ResignConfig

ProgressCallback = Callable[[str], None]


class QueueProgressSink:
    """Progress callback that buffers messages for another thread to drain"""

    def __init__(self, events: Optional[queue.Queue] = None):
        self.events = events if events is not None else queue.Queue()

    def __call__(self, message: str) -> None:
        self.events.put(message)

    def drain(self) -> list:
        messages = []
        while True:
            try:
                messages.append(self.events.get_nowait())
            except queue.Empty:
                return messages


class Resigner:
    """Runs the full re-signing pipeline for one request.

    extract -> replace profile -> update bundle ID -> extract entitlements ->
    sign nested code, then the bundle -> package. Any failure ends the run
    and the working directory is removed whatever happens.
    """

    def __init__(
        self,
        request: ResignRequest,
        config: Optional[ResignConfig] = None,
        runner: Optional[ToolRunner] = None,
        progress: Optional[ProgressCallback] = None,
    ):
        self.request = request
        self.config = config or ResignConfig()
        self.runner = runner or ToolRunner(timeout=self.config.timeout)
        self.progress = progress
        self.console = get_console()

    def _report(self, milestone: Milestone) -> None:
        self.console.log(f"[bold blue]{milestone.value}[/]")
        if self.progress:
            self.progress(milestone.value)

    def run(self) -> Path:
        request = self.request
        if request.identity is None:
            raise CertificateNotFound()

        self.console.log(f"[blue]Re-signing:[/] {request.source_archive}")
        with WorkingTree(self.config.scratch_dir) as tree:
            self._report(Milestone.EXTRACTING)
            extract_archive(self.runner, self.config, request.source_archive, tree.root)
            app_dir = locate_app_bundle(tree.root)

            self._report(Milestone.REPLACING_PROFILE)
            replace_provisioning_profile(app_dir, request.provisioning_profile)

            if request.new_bundle_identifier:
                self._report(Milestone.UPDATING_IDENTIFIER)
                update_bundle_identifier(app_dir, request.new_bundle_identifier)

            self._report(Milestone.SIGNING)
            # Extracted once and shared by every codesign call in this run
            profile = load_profile(
                request.provisioning_profile,
                get_profile_decoder(self.config, self.runner),
            )
            entitlements_path = write_entitlements(profile, tree.root / ENTITLEMENTS_FILE)
            signer = SigningOrchestrator(
                self.runner,
                self.config,
                request.identity,
                entitlements_path,
                IdentityDirectory(self.runner, self.config.security),
            )
            signer.sign_bundle(app_dir)
            entitlements_path.unlink()

            self._report(Milestone.PACKAGING)
            output_path = package_archive(
                self.runner, self.config, tree.root, request.output_path
            )

        self._report(Milestone.COMPLETE)
        return output_path


def resign(
    request: ResignRequest,
    config: Optional[ResignConfig] = None,
    runner: Optional[ToolRunner] = None,
    progress: Optional[ProgressCallback] = None,
) -> Path:
    """Re-sign an archive and return the path of the new one"""
    return Resigner(request, config, runner, progress).run()
