import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
import toml
from typing import Dict, Any, Optional

from iparesign.src.core.errors import ConfigError

PROFILE_DECODERS = ("security", "asn1crypto")


@dataclass(frozen=True)
class ResignConfig:
    """Tool locations and defaults used by a re-signing run"""

    unzip: str = "/usr/bin/unzip"
    zip: str = "/usr/bin/zip"
    codesign: str = "/usr/bin/codesign"
    security: str = "/usr/bin/security"
    codesign_allocate: Optional[str] = None  # exported as CODESIGN_ALLOCATE
    timeout: Optional[float] = None  # per tool invocation, seconds
    keychain: Optional[str] = None  # None = ask security for the default
    profile_decoder: str = "security"
    scratch_dir: Path = Path(tempfile.gettempdir())


def get_config_path() -> Path:
    """Return the path to the configuration file."""
    env_path = os.environ.get("IPARESIGN_CONFIG")
    if env_path:
        return Path(env_path)
    return Path.home() / ".iparesign" / "config.toml"


def load_config() -> Dict[str, Any]:
    """Load configuration from TOML file."""
    config_path = get_config_path()
    if not config_path.exists():
        return {}

    try:
        return toml.load(config_path)
    except (toml.TomlDecodeError, OSError) as e:
        raise ConfigError(f"Failed to load config {config_path}: {e}")


def get_resign_config() -> ResignConfig:
    """Build the run configuration from the config file and environment."""
    config = load_config()
    tools = config.get("tools", {})
    signing = config.get("signing", {})
    paths = config.get("paths", {})

    defaults = ResignConfig()

    decoder = signing.get("profile_decoder", defaults.profile_decoder)
    if decoder not in PROFILE_DECODERS:
        raise ConfigError(
            f"Unknown profile_decoder '{decoder}', expected one of: {', '.join(PROFILE_DECODERS)}"
        )

    # Environment wins over the config file
    scratch_dir = os.environ.get("IPARESIGN_SCRATCH_DIR") or paths.get("scratch_dir")
    keychain = os.environ.get("IPARESIGN_KEYCHAIN") or signing.get("keychain")

    timeout = tools.get("timeout")
    if timeout is not None:
        try:
            timeout = float(timeout)
        except (TypeError, ValueError):
            raise ConfigError(f"Invalid tools.timeout value: {timeout!r}")

    return ResignConfig(
        unzip=tools.get("unzip", defaults.unzip),
        zip=tools.get("zip", defaults.zip),
        codesign=tools.get("codesign", defaults.codesign),
        security=tools.get("security", defaults.security),
        codesign_allocate=tools.get("codesign_allocate"),
        timeout=timeout,
        keychain=keychain,
        profile_decoder=decoder,
        scratch_dir=Path(scratch_dir).expanduser() if scratch_dir else defaults.scratch_dir,
    )
