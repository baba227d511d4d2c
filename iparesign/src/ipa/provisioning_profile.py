import plistlib
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from asn1crypto.cms import ContentInfo

from iparesign.logger import get_console
from iparesign.src.core.errors import ConfigError, InvalidProvisioningProfile
from iparesign.src.core.process import ToolRunner, decode_output
from iparesign.src.utils.config_loader import ResignConfig


@dataclass(frozen=True)
class ProvisioningProfile:
    """Decoded contents of a .mobileprovision file"""

    path: Path
    entitlements: Dict[str, Any]
    name: Optional[str] = None
    uuid: Optional[str] = None
    team_id: Optional[str] = None
    team_name: Optional[str] = None
    expiration_date: Optional[datetime] = None
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def application_identifier(self) -> Optional[str]:
        return self.entitlements.get("application-identifier")


class SecurityProfileDecoder:
    """Decode the CMS envelope with `security cms -D`"""

    def __init__(self, runner: ToolRunner, security: str = "/usr/bin/security"):
        self.runner = runner
        self.security = security

    def decode(self, profile_path: Path) -> bytes:
        result = self.runner.run([self.security, "cms", "-D", "-i", profile_path])
        if result.returncode != 0:
            raise InvalidProvisioningProfile(
                f"Failed to decode provisioning profile: {profile_path}",
                decode_output(result.stderr),
            )
        return result.stdout


class Asn1ProfileDecoder:
    """Read the signed plist straight out of the CMS envelope, no macOS tools needed"""

    def decode(self, profile_path: Path) -> bytes:
        try:
            content_info = ContentInfo.load(Path(profile_path).read_bytes())
            if content_info["content_type"].native != "signed_data":
                raise ValueError("not a CMS signed-data container")
            signed_data = content_info["content"]
            # The actual plist is the encapsulated content
            plist_data = signed_data["encap_content_info"]["content"].native
        except (OSError, ValueError, TypeError, KeyError) as e:
            raise InvalidProvisioningProfile(
                f"Failed to decode provisioning profile: {profile_path}", str(e)
            )
        if not plist_data:
            raise InvalidProvisioningProfile(
                f"Provisioning profile has no content: {profile_path}"
            )
        return plist_data


def get_profile_decoder(config: ResignConfig, runner: ToolRunner):
    """Pick the decoder named in the configuration"""
    if config.profile_decoder == "security":
        return SecurityProfileDecoder(runner, config.security)
    if config.profile_decoder == "asn1crypto":
        return Asn1ProfileDecoder()
    raise ConfigError(f"Unknown profile decoder: {config.profile_decoder}")


def parse_profile(profile_path: Path, data: bytes) -> ProvisioningProfile:
    """Parse a decoded profile plist, requiring an Entitlements dictionary"""
    try:
        document = plistlib.loads(data)
    except Exception as e:
        raise InvalidProvisioningProfile(
            f"Provisioning profile is not a valid property list: {profile_path}", str(e)
        )

    if not isinstance(document, dict):
        raise InvalidProvisioningProfile(
            f"Provisioning profile is not a dictionary: {profile_path}"
        )

    entitlements = document.get("Entitlements")
    if not isinstance(entitlements, dict):
        raise InvalidProvisioningProfile(
            f"Provisioning profile has no Entitlements: {profile_path}"
        )

    team_ids = document.get("TeamIdentifier") or []
    return ProvisioningProfile(
        path=Path(profile_path),
        entitlements=entitlements,
        name=document.get("Name"),
        uuid=document.get("UUID"),
        team_id=team_ids[0] if team_ids else entitlements.get("com.apple.developer.team-identifier"),
        team_name=document.get("TeamName"),
        expiration_date=document.get("ExpirationDate"),
        raw=document,
    )


def load_profile(profile_path: Path, decoder) -> ProvisioningProfile:
    """Decode and parse a provisioning profile"""
    profile_path = Path(profile_path)
    if not profile_path.is_file():
        raise InvalidProvisioningProfile(f"Provisioning profile not found: {profile_path}")

    get_console().log(f"[blue]Reading provisioning profile:[/] {profile_path}")
    return parse_profile(profile_path, decoder.decode(profile_path))


def write_entitlements(profile: ProvisioningProfile, destination: Path) -> Path:
    """Write the profile's entitlements as a standalone XML plist for codesign"""
    destination = Path(destination)
    try:
        with open(destination, "wb") as f:
            plistlib.dump(profile.entitlements, f, fmt=plistlib.FMT_XML, sort_keys=False)
    except (OSError, TypeError, OverflowError) as e:
        raise InvalidProvisioningProfile(
            f"Failed to write entitlements to {destination}", str(e)
        )
    get_console().log(f"[green]Entitlements extracted to:[/] {destination}")
    return destination
