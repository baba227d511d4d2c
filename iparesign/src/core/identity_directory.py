import re
from typing import List, Optional

from rich.markup import escape

from iparesign.logger import get_console
from iparesign.src.core.errors import KeychainNotFound
from iparesign.src.core.models import SigningIdentity
from iparesign.src.core.process import ToolRunner, decode_output

# 1) 49D094AFF3B420616057E1B552B0A2CF1B308F3F "Apple Development: Jane Doe (ABCDE12345)"
FINGERPRINT_RE = re.compile(r"\b([A-Fa-f0-9]{40})\b")
DISPLAY_NAME_RE = re.compile(r'"(.*)"')


def parse_identities(output: str) -> List[SigningIdentity]:
    """Parse `security find-identity` output, skipping lines without a fingerprint and name"""
    identities = []
    for line in output.splitlines():
        fingerprint = FINGERPRINT_RE.search(line)
        name = DISPLAY_NAME_RE.search(line)
        if not fingerprint or not name:
            continue
        identity = SigningIdentity(id=fingerprint.group(1).upper(), display_name=name.group(1))
        if identity not in identities:
            identities.append(identity)
    return identities


class IdentityDirectory:
    """Looks up code signing identities in the user's keychains"""

    def __init__(self, runner: ToolRunner, security: str = "/usr/bin/security"):
        self.runner = runner
        self.security = security
        self.console = get_console()

    def default_keychain(self) -> str:
        """Path of the user's default keychain"""
        result = self.runner.run([self.security, "default-keychain", "-d", "user"])
        path = decode_output(result.stdout).strip('"')
        if result.returncode != 0 or not path:
            raise KeychainNotFound(diagnostic=decode_output(result.stderr))
        self.console.log(f"[blue]Default keychain:[/] {path}")
        return path

    def list_identities(self) -> List[SigningIdentity]:
        """Valid code signing identities, empty when there are none"""
        cmd = [self.security, "find-identity", "-v", "-p", "codesigning"]
        try:
            cmd.append(self.default_keychain())
        except KeychainNotFound as e:
            self.console.log(f"[yellow]{e.message}, searching all keychains[/]")

        result = self.runner.run(cmd)
        if result.returncode != 0:
            self.console.log(
                f"[yellow]find-identity exited with status {result.returncode}:[/] {escape(decode_output(result.stderr))}"
            )
        return parse_identities(decode_output(result.stdout))

    def resolve(self, selector: str) -> Optional[SigningIdentity]:
        """Find an identity by fingerprint or exact display name"""
        selector = selector.strip()
        identities = self.list_identities()
        for identity in identities:
            if identity.id == selector.upper() or identity.display_name == selector:
                return identity

        # A fingerprint that isn't listed is still usable by codesign
        if FINGERPRINT_RE.fullmatch(selector):
            return SigningIdentity(id=selector.upper())
        return None
