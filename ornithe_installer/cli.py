"""Command line interface of the installer."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Iterable, Mapping, Sequence

from . import client, manifest, meta, mmc_pack, server
from .errors import InstallerError
from .locations import current_location, dot_minecraft_location, server_location
from .manifest import MinecraftVersion
from .meta import LoaderType, LoaderVersion
from .net import OSL_MODRINTH_URL, VERSION

log = logging.getLogger(__name__)

_LOADER_CHOICES = [loader.value for loader in LoaderType]

_LONG_FLAG_COMMANDS = {
    "--client": "client",
    "--mmc": "mmc",
    "--prism": "mmc",
    "--server": "server",
    "--list-game-versions": "game-versions",
    "--list-minecraft-versions": "game-versions",
    "--list-loader-versions": "loader-versions",
}


def _parse_bool(text: str) -> bool:
    if text == "true":
        return True
    if text == "false":
        return False
    raise argparse.ArgumentTypeError(f"invalid value '{text}': expected true or false")


def _add_loader_type(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--loader-type",
        metavar="TYPE",
        default="fabric",
        type=str.lower,
        choices=_LOADER_CHOICES,
        help="Loader type to use",
    )


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-m",
        "--minecraft-version",
        metavar="VERSION",
        required=True,
        help="Minecraft version to use",
    )
    _add_loader_type(parser)
    parser.add_argument(
        "--loader-version",
        metavar="VERSION",
        default="latest",
        help="Loader version to use",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with every installer subcommand."""
    parser = argparse.ArgumentParser(prog="ornithe-installer", description="Ornithe Installer")
    parser.add_argument("-V", "--version", action="version", version=f"Ornithe Installer {VERSION}")
    commands = parser.add_subparsers(dest="command_name", metavar="COMMAND")

    client_parser = commands.add_parser(
        "client", help="Client installation for the official launcher"
    )
    client_parser.set_defaults(command="client")
    _add_common_arguments(client_parser)
    client_parser.add_argument(
        "-d", "--dir", type=Path, default=Path(dot_minecraft_location()),
        help="Installation directory",
    )
    client_parser.add_argument(
        "-p", "--generate-profile", metavar="VALUE", type=_parse_bool, default=True,
        help="Whether to generate a launch profile",
    )

    mmc_parser = commands.add_parser(
        "mmc", aliases=["prism"], help="Generate an instance for MultiMC/PrismLauncher"
    )
    mmc_parser.set_defaults(command="mmc")
    _add_common_arguments(mmc_parser)
    mmc_parser.add_argument(
        "-d", "--dir", type=Path, default=Path(current_location()), help="Output directory"
    )
    mmc_parser.add_argument(
        "-z", "--generate-zip", metavar="VALUE", type=_parse_bool, default=True,
        help="Whether to generate an instance zip instead of installing an instance "
        "into the directory",
    )
    mmc_parser.add_argument(
        "-c", "--copy-profile-path", metavar="VALUE", type=_parse_bool, default=False,
        help="Whether to copy the path of the generated profile to the clipboard",
    )
    mmc_parser.add_argument(
        "--templates", metavar="DIR", type=Path, required=True,
        help="Directory holding the instance templates",
    )

    server_parser = commands.add_parser("server", help="Server installation")
    server_parser.set_defaults(command="server")
    _add_common_arguments(server_parser)
    server_parser.add_argument(
        "-d", "--dir", type=Path, default=Path(server_location()), help="Installation directory"
    )
    server_parser.add_argument(
        "--download-minecraft", action="store_true",
        help="Whether to download the minecraft server jar",
    )
    server_actions = server_parser.add_subparsers(dest="server_action", metavar="ACTION")
    run_parser = server_actions.add_parser("run", help="Install and run the server")
    run_parser.add_argument(
        "--args", metavar="ARGS",
        help="Java arguments to pass to the server (before the server jar)",
    )
    run_parser.add_argument(
        "--java", metavar="PATH", type=Path, help="The java binary to use to run the server"
    )

    game_parser = commands.add_parser(
        "game-versions", aliases=["minecraft-versions"], help="List supported game versions"
    )
    game_parser.set_defaults(command="game-versions")
    game_parser.add_argument(
        "-s", "--show-snapshots", action="store_true", help="Include snapshot versions"
    )
    game_parser.add_argument(
        "--show-historical", action="store_true", help="Include historical versions"
    )

    loader_parser = commands.add_parser("loader-versions", help="List available loader versions")
    loader_parser.set_defaults(command="loader-versions")
    loader_parser.add_argument(
        "-b", "--show-betas", action="store_true", help="Include beta versions"
    )
    _add_loader_type(loader_parser)

    return parser


def supported_versions(
    versions: Iterable[MinecraftVersion], intermediary_versions: Mapping[str, object]
) -> list[MinecraftVersion]:
    """Keep the versions that have intermediary mappings for either side."""
    return [
        version
        for version in versions
        if version.id in intermediary_versions
        or f"{version.id}-client" in intermediary_versions
        or f"{version.id}-server" in intermediary_versions
    ]


def filter_game_versions(
    versions: Iterable[MinecraftVersion], show_snapshots: bool, show_historical: bool
) -> list[MinecraftVersion]:
    """Select releases plus, on request, snapshots and historical versions."""
    selected = []
    for version in versions:
        displayed = True if show_snapshots and show_historical else version.is_release()
        if not displayed and show_snapshots:
            displayed = version.is_snapshot()
        if not displayed and show_historical:
            displayed = version.is_historical()
        if displayed:
            selected.append(version)
    return selected


def find_minecraft_version(
    versions: Iterable[MinecraftVersion], version_id: str
) -> MinecraftVersion:
    """Return the version with id ``version_id``."""
    for version in versions:
        if version.id == version_id:
            return version
    raise InstallerError(
        f"Could not find Minecraft version {version_id} among supported versions!"
    )


def parse_loader_type(name: str) -> LoaderType:
    """Map a loader name to its type."""
    try:
        return LoaderType(name)
    except ValueError:
        raise InstallerError("Unsupported loader type!") from None


def find_loader_version(versions: Sequence[LoaderVersion], requested: str) -> LoaderVersion:
    """Return the requested loader version; ``latest`` picks the first one."""
    if requested == "latest":
        if not versions:
            raise InstallerError("Failed to find loader version in list")
        return versions[0]
    for version in versions:
        if version.version == requested:
            return version
    raise InstallerError(f"Could not find loader version: {requested}")


def _list_loader_versions(args: argparse.Namespace) -> None:
    versions = meta.fetch_loader_versions()
    loader_type = parse_loader_type(args.loader_type)
    available = versions.get(loader_type, [])
    listed = "".join(
        f"{version.version} " for version in available if args.show_betas or version.is_stable()
    )
    latest = available[0].version if available else "<not available>"
    name = loader_type.localized_name()
    print(f"Latest {name} Loader version: {latest}")
    print(f"Available {name} Loader versions:")
    print(listed)


def _run(args: argparse.Namespace) -> bool:
    """Carry out the parsed command; return whether something was installed."""
    if args.command == "loader-versions":
        _list_loader_versions(args)
        return False

    available = supported_versions(
        manifest.fetch_versions().versions, meta.fetch_intermediary_versions()
    )

    if args.command == "game-versions":
        shown = filter_game_versions(available, args.show_snapshots, args.show_historical)
        print("Available Minecraft versions:\n")
        print("".join(f"{version.id} " for version in shown))
        return False

    loader_versions = meta.fetch_loader_versions()
    minecraft_version = find_minecraft_version(available, args.minecraft_version)
    loader_type = parse_loader_type(args.loader_type)
    loader_version = find_loader_version(loader_versions.get(loader_type, []), args.loader_version)

    if args.command == "client":
        client.install(
            minecraft_version, loader_type, loader_version, args.dir, args.generate_profile
        )
    elif args.command == "server":
        if args.server_action == "run":
            run_args = args.args.split(" ") if args.args is not None else None
            server.install_and_run(
                minecraft_version, loader_type, loader_version, args.dir, args.java, run_args
            )
        else:
            server.install(
                minecraft_version, loader_type, loader_version, args.dir, args.download_minecraft
            )
    elif args.command == "mmc":
        mmc_pack.install(
            minecraft_version,
            loader_type,
            loader_version,
            args.dir,
            args.copy_profile_path,
            args.generate_zip,
            mmc_pack.load_templates(args.templates),
        )
    else:
        return False
    return True


def _normalize(argv: list[str]) -> list[str]:
    if argv and argv[0] in _LONG_FLAG_COMMANDS:
        return [_LONG_FLAG_COMMANDS[argv[0]], *argv[1:]]
    return argv


def main(argv: Sequence[str] | None = None) -> int:
    """Run the installer command line and return the exit status."""
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    arguments = list(sys.argv[1:] if argv is None else argv)
    log.info("Ornithe Installer v%s", VERSION)

    parser = build_parser()
    if not arguments:
        parser.print_help(sys.stderr)
        return 2
    try:
        args = parser.parse_args(_normalize(arguments))
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else 2
    if getattr(args, "command", None) is None:
        parser.print_help(sys.stderr)
        return 2

    try:
        installed = _run(args)
    except InstallerError as exc:
        sys.stderr.write("Failed to load Ornithe Installer CLI: " + exc.message)
        sys.stderr.flush()
        return 1

    if installed:
        log.info("Installation complete!")
        log.info("Ornithe has been successfully installed.")
        log.info(
            "Most mods require that you also download the Ornithe Standard Libraries mod "
            "and place it in your mods folder."
        )
        log.info("You can find it at %s", OSL_MODRINTH_URL)
    return 0


if __name__ == "__main__":
    sys.exit(main())