from pathlib import Path

from iparesign.logger import get_console
from iparesign.src.constants.bundle_layout import (
    APP_BUNDLE_SUFFIX,
    IPA_SUFFIX,
    PAYLOAD_DIR,
)
from iparesign.src.core.errors import (
    ExtractionFailed,
    InvalidArchiveLayout,
    InvalidArchivePath,
    PackagingFailed,
)
from iparesign.src.core.process import ToolRunner, decode_output
from iparesign.src.utils.config_loader import ResignConfig


def extract_archive(
    runner: ToolRunner, config: ResignConfig, archive: Path, destination: Path
) -> None:
    """Unpack the archive into destination with the external unzip tool"""
    console = get_console()
    archive = Path(archive)
    if not archive.is_file():
        raise InvalidArchivePath(f"Archive not found: {archive}")

    console.log(f"[blue]Extracting:[/] {archive}")
    result = runner.run([config.unzip, "-q", archive.resolve(), "-d", destination])
    if result.returncode != 0:
        raise ExtractionFailed(
            f"unzip exited with status {result.returncode}",
            decode_output(result.stderr) or decode_output(result.stdout),
        )

    if not any(Path(destination).iterdir()):
        raise ExtractionFailed(f"Archive is empty: {archive}")


def locate_app_bundle(root: Path) -> Path:
    """Return the single .app directory inside root/Payload"""
    payload_dir = Path(root) / PAYLOAD_DIR
    if not payload_dir.is_dir():
        raise InvalidArchiveLayout(f"No {PAYLOAD_DIR} directory in archive")

    bundles = sorted(p for p in payload_dir.iterdir() if p.suffix == APP_BUNDLE_SUFFIX)
    if len(bundles) != 1:
        found = ", ".join(p.name for p in bundles) or "none"
        raise InvalidArchiveLayout(
            f"Expected exactly one {APP_BUNDLE_SUFFIX} bundle in {PAYLOAD_DIR}, found {len(bundles)}: {found}"
        )

    get_console().log(f"[green]Found app bundle:[/] {bundles[0].name}")
    return bundles[0]


def resolve_output_path(output_path: Path) -> Path:
    """Append the .ipa extension when missing and make the path absolute"""
    output_path = Path(output_path).expanduser()
    if not output_path.name.lower().endswith(IPA_SUFFIX):
        output_path = output_path.with_name(output_path.name + IPA_SUFFIX)
    return output_path.resolve()


def package_archive(
    runner: ToolRunner, config: ResignConfig, root: Path, output_path: Path
) -> Path:
    """Zip root/Payload into a new archive and return its path.

    zip runs from the scratch root so entries start with Payload/.
    """
    console = get_console()
    output_path = resolve_output_path(output_path)
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)

        if output_path.exists():
            console.log(f"[yellow]Replacing existing file:[/] {output_path}")
            output_path.unlink()
    except OSError as e:
        raise PackagingFailed(f"Cannot write archive to {output_path}", str(e))

    console.log(f"[blue]Packaging:[/] {output_path}")
    result = runner.run([config.zip, "-qry", output_path, PAYLOAD_DIR], cwd=root)
    if result.returncode != 0:
        raise PackagingFailed(
            f"zip exited with status {result.returncode}",
            decode_output(result.stderr) or decode_output(result.stdout),
        )

    if not output_path.is_file():
        raise PackagingFailed(f"zip produced no archive at {output_path}")

    console.log(f"[green]Archive written to:[/] {output_path}")
    return output_path
