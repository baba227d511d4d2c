from pathlib import Path
import sys
from typing import Optional
from rich.markup import escape
from rich.prompt import Prompt

from iparesign.arguments import default_output_path
from iparesign.logger import get_console
from iparesign.src.core.errors import CertificateNotFound, ResignError
from iparesign.src.core.identity_directory import IdentityDirectory
from iparesign.src.core.models import ResignRequest, SigningIdentity
from iparesign.src.core.process import ToolRunner
from iparesign.src.core.resigner import resign
from iparesign.src.utils.config_loader import get_resign_config


def verify_ipa_exists(ipa_path: Path, console) -> bool:
    """Verify IPA file exists and return status."""
    if not ipa_path.exists():
        console.print(f"[red]Error:[/] IPA file not found: {ipa_path}")
        return False
    return True


def print_error(console, error: ResignError) -> None:
    console.print(f"\n[red]Error ({error.kind}):[/] {error.message}")
    if error.diagnostic:
        console.print(f"[dim]{escape(error.diagnostic)}[/]", highlight=False)


def select_identity(
    directory: IdentityDirectory, selector: Optional[str], console
) -> SigningIdentity:
    """Resolve --identity, or let the user pick one when it wasn't given."""
    if selector:
        identity = directory.resolve(selector)
        if not identity:
            raise CertificateNotFound(f"No signing identity matching '{selector}'")
        return identity

    identities = directory.list_identities()
    if not identities:
        raise CertificateNotFound("No code signing identities found in the keychain")
    if len(identities) == 1:
        return identities[0]

    if not sys.stdin.isatty():
        raise CertificateNotFound(
            "Multiple signing identities found, choose one with --identity"
        )

    console.print("\n[bold blue]Available signing identities:[/]")
    for index, identity in enumerate(identities, start=1):
        console.print(f"  [cyan]{index})[/] {identity.display_name} [dim]{identity.id}[/]")
    choice = Prompt.ask(
        "Select signing identity",
        choices=[str(i) for i in range(1, len(identities) + 1)],
        default="1",
    )
    return identities[int(choice) - 1]


def print_configuration_summary(console, request: ResignRequest) -> None:
    """Print the configuration summary."""
    console.print("\n[bold blue]Re-signing Configuration:[/]")
    console.print(f"[cyan]Input IPA:[/] {request.source_archive}")
    console.print(f"[cyan]Provisioning profile:[/] {request.provisioning_profile}")
    console.print(f"[cyan]Identity:[/] {request.identity}")
    if request.new_bundle_identifier:
        console.print(f"[cyan]New bundle ID:[/] {request.new_bundle_identifier}")
    console.print(f"[cyan]Output:[/] {request.output_path}")


def main(args) -> int:
    """Main sign function that does the actual work."""
    console = get_console()

    # Verify IPA exists
    if not verify_ipa_exists(args.ipa_path, console):
        return 1

    try:
        config = get_resign_config()
        runner = ToolRunner(timeout=config.timeout)
        identity = select_identity(
            IdentityDirectory(runner, config.security), args.identity, console
        )
    except ResignError as e:
        print_error(console, e)
        return 1

    request = ResignRequest(
        source_archive=args.ipa_path,
        provisioning_profile=args.profile,
        identity=identity,
        output_path=args.output or default_output_path(args.ipa_path),
        new_bundle_identifier=args.bundle_id,
    )
    print_configuration_summary(console, request)

    # Confirm and sign
    if not args.yes and sys.stdin.isatty():
        if console.input("\n[yellow]Press Enter to continue or Ctrl+C to cancel[/]"):
            return 1

    with console.status("[bold blue]Starting...") as status:
        try:
            output_path = resign(
                request,
                config,
                runner,
                progress=lambda message: status.update(f"[bold blue]{message}..."),
            )
        except ResignError as e:
            print_error(console, e)
            return 1

    console.print(f"\n[green]✓ Re-signed IPA written to:[/] {output_path}")
    return 0


def run_sign_command(args):
    """Entry point for the sign command from CLI"""
    return main(args)
