import plistlib
import subprocess
import zipfile
from pathlib import Path

import pytest

from iparesign.src.core.models import SigningIdentity
from iparesign.src.utils.config_loader import ResignConfig

FINGERPRINT = "AABB" + "0123456789ABCDEF" * 2 + "CAFE"
KEYCHAIN = "/Users/dev/Library/Keychains/login.keychain-db"
ENTITLEMENTS = {
    "application-identifier": "TEAMID1234.com.example.app",
    "keychain-access-groups": ["TEAMID.*"],
    "get-task-allow": True,
}

FIND_IDENTITY_OUTPUT = f"""\
  1) {FINGERPRINT} "Apple Development: Jane Doe (TEAMID1234)"
  2) 49D094AFF3B420616057E1B552B0A2CF1B308F3F "Apple Distribution: Example Corp (TEAMID1234)"
     2 valid identities found
"""


class FakeRunner:
    """Stands in for the external tools.

    unzip/zip are done with zipfile, `security cms` returns the profile file
    as-is (tests write plain plists), and codesign calls are recorded in order.
    """

    def __init__(
        self,
        fail_sign_on=None,
        sign_stderr=b"errSecInternalComponent",
        unzip_returncode=0,
        zip_returncode=0,
        cms_returncode=0,
        keychain_returncode=0,
        identities_output=FIND_IDENTITY_OUTPUT,
    ):
        self.fail_sign_on = fail_sign_on
        self.sign_stderr = sign_stderr
        self.unzip_returncode = unzip_returncode
        self.zip_returncode = zip_returncode
        self.cms_returncode = cms_returncode
        self.keychain_returncode = keychain_returncode
        self.identities_output = identities_output
        self.calls = []
        self.signed = []  # (target path, entitlements dict, env)

    def _result(self, cmd, returncode=0, stdout=b"", stderr=b""):
        return subprocess.CompletedProcess(cmd, returncode, stdout, stderr)

    def tools(self):
        return [Path(cmd[0]).name for cmd in self.calls]

    def run(self, cmd, cwd=None, env=None):
        cmd = [str(c) for c in cmd]
        self.calls.append(cmd)
        tool = Path(cmd[0]).name

        if tool == "unzip":
            if self.unzip_returncode:
                return self._result(cmd, self.unzip_returncode, stderr=b"unzip: bad archive")
            with zipfile.ZipFile(cmd[2]) as zf:
                zf.extractall(cmd[4])
            return self._result(cmd)

        if tool == "zip":
            if self.zip_returncode:
                return self._result(cmd, self.zip_returncode, stderr=b"zip I/O error")
            root = Path(cwd)
            with zipfile.ZipFile(cmd[2], "w") as zf:
                for path in sorted((root / cmd[3]).rglob("*")):
                    zf.write(path, path.relative_to(root).as_posix())
            return self._result(cmd)

        if tool == "codesign":
            target = Path(cmd[-1])
            entitlements = plistlib.loads(Path(cmd[cmd.index("--entitlements") + 1]).read_bytes())
            self.signed.append((target, entitlements, env))
            if self.fail_sign_on and target.name == self.fail_sign_on:
                return self._result(cmd, 1, stderr=self.sign_stderr)
            return self._result(cmd)

        if tool == "security":
            if cmd[1] == "cms":
                if self.cms_returncode:
                    return self._result(cmd, self.cms_returncode, stderr=b"security: failed to decode")
                return self._result(cmd, stdout=Path(cmd[-1]).read_bytes())
            if cmd[1] == "default-keychain":
                if self.keychain_returncode:
                    return self._result(cmd, self.keychain_returncode, stderr=b"no default keychain")
                return self._result(cmd, stdout=f'    "{KEYCHAIN}"\n'.encode())
            if cmd[1] == "find-identity":
                return self._result(cmd, stdout=self.identities_output.encode())

        raise AssertionError(f"Unexpected command: {cmd}")


def build_ipa(path, bundles=("App.app",), frameworks=("Lib.framework",), info=None):
    """Write a minimal IPA with the given bundles under Payload/"""
    info = info or {"CFBundleIdentifier": "com.example.app", "CFBundleExecutable": "App"}
    with zipfile.ZipFile(path, "w", zipfile.ZIP_DEFLATED) as zf:
        for bundle in bundles:
            base = f"Payload/{bundle}"
            zf.writestr(f"{base}/Info.plist", plistlib.dumps(info))
            zf.writestr(f"{base}/App", b"\xcf\xfa\xed\xfe binary")
            zf.writestr(f"{base}/embedded.mobileprovision", b"old profile")
            for framework in frameworks:
                zf.writestr(f"{base}/Frameworks/{framework}/Info.plist", plistlib.dumps({}))
    return path


def build_profile(path, entitlements=ENTITLEMENTS, **extra):
    document = {
        "Name": "Test Profile",
        "UUID": "6F1D4E2A-1111-2222-3333-444455556666",
        "TeamIdentifier": ["TEAMID1234"],
        "TeamName": "Example Corp",
        **extra,
    }
    if entitlements is not None:
        document["Entitlements"] = entitlements
    path.write_bytes(plistlib.dumps(document))
    return path


@pytest.fixture
def identity():
    return SigningIdentity(FINGERPRINT, "Apple Development: Jane Doe (TEAMID1234)")


@pytest.fixture
def scratch_dir(tmp_path):
    path = tmp_path / "scratch"
    path.mkdir()
    return path


@pytest.fixture
def config(scratch_dir):
    return ResignConfig(scratch_dir=scratch_dir)


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def ipa_path(tmp_path):
    return build_ipa(tmp_path / "App.ipa")


@pytest.fixture
def profile_path(tmp_path):
    return build_profile(tmp_path / "profile.mobileprovision")
