from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class SigningIdentity:
    """A code signing identity from the keychain, keyed by its SHA-1 fingerprint"""

    id: str  # 40 character hex fingerprint
    display_name: str = field(default="", compare=False)

    def __str__(self) -> str:
        if self.display_name:
            return f"{self.display_name} ({self.id})"
        return self.id


@dataclass(frozen=True)
class ResignRequest:
    """Everything one re-signing run needs, fixed before the run starts"""

    source_archive: Path
    provisioning_profile: Path
    identity: Optional[SigningIdentity]
    output_path: Path
    new_bundle_identifier: Optional[str] = None  # None = keep original


@dataclass(frozen=True)
class SignableUnit:
    """A path inside the app bundle that gets its own code signature"""

    path: Path
    is_bundle_root: bool = False


class Milestone(Enum):
    EXTRACTING = "Extracting archive"
    REPLACING_PROFILE = "Replacing provisioning profile"
    UPDATING_IDENTIFIER = "Updating bundle identifier"
    SIGNING = "Signing"
    PACKAGING = "Packaging archive"
    COMPLETE = "Re-signing complete"
