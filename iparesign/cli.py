import argparse
import sys
from pathlib import Path
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.text import Text
from rich.theme import Theme
from rich_argparse import RichHelpFormatter
from iparesign.arguments import add_signing_arguments
from iparesign.src.constants.cli_constants import (
    __version__,
    get_banner_text,
    APP_DESCRIPTION,
)


class IPAResignHelpFormatter(RichHelpFormatter):
    """Custom formatter for the iparesign CLI that enhances the output with rich styling."""

    def __init__(self, prog):
        super().__init__(prog, max_help_position=30, width=100)
        self.console = Console(
            theme=Theme(
                {
                    "command": "bold cyan",
                    "argument": "green",
                    "option": "yellow",
                    "version": "blue",
                    "title": "bold magenta",
                }
            )
        )

    def start_section(self, heading):
        # Make section headings more prominent
        heading_text = Text(heading, style="title")
        super().start_section(str(heading_text))


def display_banner():
    """Display a banner for iparesign."""
    console = Console()
    banner = get_banner_text()

    version_info = Text(f"v{__version__}", style="version")
    tagline = Text(APP_DESCRIPTION, style="italic")

    panel = Panel.fit(
        Text.assemble(banner, "\n", tagline, "\n", version_info),
        border_style="green",
        padding=(1, 2),
    )
    console.print(panel)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="iparesign",
        description=f"iparesign: {APP_DESCRIPTION}",
        formatter_class=IPAResignHelpFormatter,
        add_help=True,
    )

    parser.add_argument(
        "--version", action="version", version=f"iparesign {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command")

    # Sign command
    sign_parser = subparsers.add_parser(
        "sign",
        help="Re-sign an IPA file",
        formatter_class=IPAResignHelpFormatter,
        description="Re-sign an IPA file with a keychain identity and a provisioning profile.",
    )
    add_signing_arguments(sign_parser)

    # Identities command
    subparsers.add_parser(
        "identities",
        help="List code signing identities",
        formatter_class=IPAResignHelpFormatter,
        description="List the valid code signing identities in your default keychain.",
    )

    # Profile command
    profile_parser = subparsers.add_parser(
        "profile",
        help="Show a provisioning profile",
        formatter_class=IPAResignHelpFormatter,
        description="Show a provisioning profile's details and entitlements.",
    )
    profile_parser.add_argument(
        "profile_path", type=Path, help="Path to the .mobileprovision file"
    )

    return parser


def main(argv=None):
    load_dotenv()
    argv = sys.argv[1:] if argv is None else argv

    # Display the banner before the help text
    if not argv or "-h" in argv or "--help" in argv:
        display_banner()

    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "sign":
        from iparesign.commands.sign import run_sign_command

        return run_sign_command(args)
    elif args.command == "identities":
        from iparesign.commands.identities import run_identities_command

        return run_identities_command(args)
    elif args.command == "profile":
        from iparesign.commands.profile import run_profile_command

        return run_profile_command(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
