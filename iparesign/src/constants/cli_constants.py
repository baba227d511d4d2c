from rich.text import Text

__version__ = "0.1.0"

APP_DESCRIPTION = "Re-sign iOS app archives with your own identity and provisioning profile"


def get_banner_text() -> Text:
    """Return the styled banner shown above the help output."""
    return Text("iparesign", style="bold cyan")
