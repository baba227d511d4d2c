from rich.table import Table

from iparesign.logger import get_console
from iparesign.src.core.errors import ResignError
from iparesign.src.core.identity_directory import IdentityDirectory
from iparesign.src.core.process import ToolRunner
from iparesign.src.utils.config_loader import get_resign_config


def run_identities_command(args) -> int:
    """List code signing identities from the default keychain"""
    console = get_console()
    try:
        config = get_resign_config()
    except ResignError as e:
        console.print(f"[red]Error:[/] {e}")
        return 1

    directory = IdentityDirectory(ToolRunner(timeout=config.timeout), config.security)
    identities = directory.list_identities()
    if not identities:
        console.print("[yellow]No valid code signing identities found[/]")
        return 0

    table = Table(title="Code Signing Identities")
    table.add_column("#")
    table.add_column("Fingerprint")
    table.add_column("Name")
    for index, identity in enumerate(identities, start=1):
        table.add_row(str(index), identity.id, identity.display_name)

    console.print(table)
    return 0
