from typing import Optional


class ResignError(Exception):
    """Base class for every failure that aborts a re-signing run.

    ``kind`` is a stable name callers can switch on, ``diagnostic`` holds the
    raw output of the external tool that failed, if any.
    """

    kind = "ResignError"
    default_message = "Re-signing failed"

    def __init__(self, message: Optional[str] = None, diagnostic: Optional[str] = None):
        self.message = message or self.default_message
        self.diagnostic = (diagnostic or "").strip() or None
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.diagnostic:
            return f"{self.message}\n{self.diagnostic}"
        return self.message


class InvalidArchivePath(ResignError):
    kind = "InvalidArchivePath"
    default_message = "Archive not found"


class InvalidArchiveLayout(ResignError):
    kind = "InvalidArchiveLayout"
    default_message = "Archive must contain exactly one application bundle in Payload"


class InvalidProvisioningProfile(ResignError):
    kind = "InvalidProvisioningProfile"
    default_message = "Invalid provisioning profile or missing entitlements"


class ExtractionFailed(ResignError):
    kind = "ExtractionFailed"
    default_message = "Failed to extract archive"


class PackagingFailed(ResignError):
    kind = "PackagingFailed"
    default_message = "Failed to package archive"


class SigningFailed(ResignError):
    kind = "SigningFailed"
    default_message = "Code signing failed"


class KeychainNotFound(SigningFailed):
    kind = "KeychainNotFound"
    default_message = "Could not determine the default keychain"


class ScratchAllocationFailed(ResignError):
    kind = "ScratchAllocationFailed"
    default_message = "Failed to create working directory"


class CertificateNotFound(ResignError):
    kind = "CertificateNotFound"
    default_message = "No valid signing identity selected"


class ConfigError(ResignError):
    kind = "ConfigError"
    default_message = "Failed to load configuration"
