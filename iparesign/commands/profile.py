import json
from rich.table import Table

from iparesign.logger import get_console
from iparesign.src.core.errors import ResignError
from iparesign.src.core.process import ToolRunner
from iparesign.src.ipa.provisioning_profile import (
    ProvisioningProfile,
    get_profile_decoder,
    load_profile,
)
from iparesign.src.utils.config_loader import get_resign_config


def print_profile_summary(console, profile: ProvisioningProfile) -> None:
    """Print the key fields of a profile followed by its entitlements"""
    table = Table(title="Provisioning Profile", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Name", profile.name or "-")
    table.add_row("UUID", profile.uuid or "-")
    table.add_row("Team", f"{profile.team_name or '-'} ({profile.team_id or '-'})")
    table.add_row("App ID", profile.application_identifier or "-")
    table.add_row(
        "Expires",
        profile.expiration_date.isoformat() if profile.expiration_date else "-",
    )
    console.print(table)

    console.print("\n[bold]Entitlements:[/bold]")
    console.print_json(json.dumps(profile.entitlements, default=str))


def run_profile_command(args) -> int:
    console = get_console()
    try:
        config = get_resign_config()
        runner = ToolRunner(timeout=config.timeout)
        profile = load_profile(args.profile_path, get_profile_decoder(config, runner))
    except ResignError as e:
        console.print(f"[red]Error reading profile:[/] {e}")
        return 1

    print_profile_summary(console, profile)
    return 0
