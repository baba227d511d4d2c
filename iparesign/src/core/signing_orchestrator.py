import os
from pathlib import Path
from typing import List, Optional

from rich.markup import escape

from iparesign.logger import get_console
from iparesign.src.constants.bundle_layout import FRAMEWORKS_DIR
from iparesign.src.core.errors import SigningFailed
from iparesign.src.core.identity_directory import IdentityDirectory
from iparesign.src.core.models import SignableUnit, SigningIdentity
from iparesign.src.core.process import ToolRunner, decode_output
from iparesign.src.utils.config_loader import ResignConfig


def collect_signable_units(app_dir: Path) -> List[SignableUnit]:
    """Everything that needs a signature, innermost first.

    Each entry of Frameworks/ is signed on its own, then the app bundle
    itself, since sealing the bundle covers the already signed frameworks.
    """
    app_dir = Path(app_dir)
    frameworks_dir = app_dir / FRAMEWORKS_DIR

    units = []
    if frameworks_dir.is_dir():
        units.extend(
            SignableUnit(path=p) for p in sorted(frameworks_dir.iterdir(), key=lambda p: p.name)
        )
    units.append(SignableUnit(path=app_dir, is_bundle_root=True))
    return units


class SigningOrchestrator:
    """Signs an app bundle and its nested code with one identity and entitlements file"""

    def __init__(
        self,
        runner: ToolRunner,
        config: ResignConfig,
        identity: SigningIdentity,
        entitlements_path: Path,
        identity_directory: Optional[IdentityDirectory] = None,
    ):
        self.runner = runner
        self.config = config
        self.identity = identity
        self.entitlements_path = Path(entitlements_path)
        self.identity_directory = identity_directory or IdentityDirectory(
            runner, config.security
        )
        self.console = get_console()
        self._keychain: Optional[str] = config.keychain

    @property
    def keychain(self) -> str:
        # Passed explicitly so codesign doesn't pick a keychain from the search list
        if not self._keychain:
            self._keychain = self.identity_directory.default_keychain()
        return self._keychain

    def _signing_env(self) -> Optional[dict]:
        if not self.config.codesign_allocate:
            return None
        env = dict(os.environ)
        env["CODESIGN_ALLOCATE"] = self.config.codesign_allocate
        return env

    def sign_unit(self, unit: SignableUnit) -> None:
        """Run codesign on a single unit, raising SigningFailed on a non-zero exit"""
        kind = "app bundle" if unit.is_bundle_root else "nested code"
        self.console.log(f"\n[blue]Signing {kind}:[/] {unit.path}")

        cmd = [
            self.config.codesign,
            "-f",
            "-s",
            self.identity.id,
            "--entitlements",
            self.entitlements_path,
            "--keychain",
            self.keychain,
            unit.path,
        ]
        result = self.runner.run(cmd, env=self._signing_env())
        if result.returncode != 0:
            error = decode_output(result.stderr) or decode_output(result.stdout)
            self.console.log(f"[red]Signing failed:[/] {escape(error)}")
            raise SigningFailed(f"codesign failed for {unit.path.name}", error)

        self.console.log(f"[green]Signed:[/] {unit.path.name}")

    def sign_bundle(self, app_dir: Path) -> List[SignableUnit]:
        """Sign nested units then the bundle, stopping at the first failure"""
        units = collect_signable_units(app_dir)
        nested = len(units) - 1
        self.console.log(
            f"[blue]Signing {nested} nested unit{'s' if nested != 1 else ''} and {Path(app_dir).name}[/]"
        )
        for unit in units:
            self.sign_unit(unit)
        return units
