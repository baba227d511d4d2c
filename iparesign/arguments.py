from pathlib import Path

from iparesign.src.constants.bundle_layout import IPA_SUFFIX


def add_signing_arguments(parser):
    """Add all signing-related arguments to an existing parser."""
    # Required arguments
    parser.add_argument("ipa_path", type=Path, help="Path to the IPA file to re-sign")

    parser.add_argument(
        "--profile",
        "-p",
        type=Path,
        required=True,
        help="Provisioning profile (.mobileprovision) to embed",
    )

    # Optional arguments
    parser.add_argument(
        "--identity",
        "-i",
        type=str,
        help="Signing identity fingerprint or exact name [default: choose interactively]",
    )

    parser.add_argument(
        "--bundle-id",
        type=str,
        help="Change the app's bundle identifier [default: keep original]",
    )

    parser.add_argument(
        "--output",
        "-o",
        type=Path,
        help=f"Output path, {IPA_SUFFIX} is appended when missing [default: <name>_resigned{IPA_SUFFIX}]",
    )

    parser.add_argument(
        "--yes",
        "-y",
        action="store_true",
        help="Don't ask for confirmation before signing [default: disabled]",
    )


def default_output_path(ipa_path: Path) -> Path:
    return ipa_path.with_name(f"{ipa_path.stem}_resigned{IPA_SUFFIX}")
