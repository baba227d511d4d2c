import os
import plistlib
import shutil
import tempfile
from pathlib import Path

from iparesign.logger import get_console
from iparesign.src.constants.bundle_layout import (
    BUNDLE_ID_KEY,
    EMBEDDED_PROFILE,
    INFO_PLIST,
)
from iparesign.src.core.errors import InvalidProvisioningProfile


def replace_provisioning_profile(app_dir: Path, profile_path: Path) -> Path:
    """Swap the app's embedded.mobileprovision for the given profile"""
    console = get_console()
    profile_path = Path(profile_path)
    if not profile_path.is_file():
        raise InvalidProvisioningProfile(f"Provisioning profile not found: {profile_path}")

    embedded = Path(app_dir) / EMBEDDED_PROFILE
    try:
        if embedded.exists():
            embedded.unlink()
            console.log(f"[yellow]Removed old provisioning profile:[/] {embedded}")

        shutil.copy2(profile_path, embedded)
    except OSError as e:
        raise InvalidProvisioningProfile(
            f"Failed to embed provisioning profile at {embedded}", str(e)
        )
    console.log(f"[green]Copied provisioning profile to:[/] {embedded}")
    return embedded


def update_bundle_identifier(app_dir: Path, new_bundle_id: str) -> bool:
    """Set CFBundleIdentifier in the app's Info.plist.

    An unreadable Info.plist is left alone and reported with a warning; the
    run carries on. Returns True when the file was rewritten.
    """
    console = get_console()
    info_plist = Path(app_dir) / INFO_PLIST

    try:
        data = info_plist.read_bytes()
    except OSError as e:
        console.log(f"[yellow]Could not read {info_plist}, bundle ID left unchanged:[/] {e}")
        return False

    # Malformed values can raise more than ValueError (a bad <date> gives
    # AttributeError)
    try:
        info = plistlib.loads(data)
    except Exception as e:
        console.log(f"[yellow]Could not parse {info_plist}, bundle ID left unchanged:[/] {e}")
        return False

    if not isinstance(info, dict):
        console.log(f"[yellow]{info_plist} is not a dictionary, bundle ID left unchanged[/]")
        return False

    old_bundle_id = info.get(BUNDLE_ID_KEY)
    info[BUNDLE_ID_KEY] = new_bundle_id

    # Keep whatever format the app shipped with
    fmt = plistlib.FMT_BINARY if data.startswith(b"bplist") else plistlib.FMT_XML
    try:
        _write_atomically(info_plist, plistlib.dumps(info, fmt=fmt, sort_keys=False))
    except OSError as e:
        console.log(f"[yellow]Could not write {info_plist}, bundle ID left unchanged:[/] {e}")
        return False

    console.log(f"[green]Bundle ID:[/] {old_bundle_id} -> {new_bundle_id}")
    return True


def _write_atomically(path: Path, data: bytes) -> None:
    fd, temp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(temp_name, path)
    except BaseException:
        if os.path.exists(temp_name):
            os.unlink(temp_name)
        raise
