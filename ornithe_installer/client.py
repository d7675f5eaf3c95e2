"""Installation of Ornithe for the official game launcher."""

from __future__ import annotations

import base64
import json
import logging
import shutil
from datetime import datetime, timezone
from pathlib import Path

from . import manifest, meta
from .errors import InstallerError
from .manifest import MinecraftVersion
from .meta import LoaderType, LoaderVersion
from .net import GameSide

log = logging.getLogger(__name__)


def icon_data_uri(icon_bytes: bytes) -> str:
    """Encode PNG bytes as an unpadded base64 data URI."""
    encoded = base64.b64encode(icon_bytes).decode("ascii").rstrip("=")
    return "data:image/png;base64," + encoded


def create_empty_jar(directory: str | Path, name: str) -> Path:
    """Create ``directory`` and an empty ``<name>.jar`` inside it."""
    directory = Path(directory)
    jar = directory / f"{name}.jar"
    try:
        directory.mkdir(parents=True, exist_ok=True)
        jar.write_bytes(b"")
    except OSError as exc:
        raise InstallerError(repr(exc)) from exc
    return jar


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def update_profiles(
    game_dir: str | Path,
    name: str,
    version: MinecraftVersion,
    loader_type: LoaderType,
    icon_bytes: bytes = b"",
) -> None:
    """Add or update the launcher profile pointing at version ``name``."""
    path = Path(game_dir) / "launcher_profiles.json"
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise InstallerError("Failed to read launcher_profiles.json") from exc
    try:
        document = json.loads(text)
    except ValueError as exc:
        raise InstallerError("Failed to parse launcher_profiles.json json") from exc

    profiles = document.get("profiles") if isinstance(document, dict) else None
    if not isinstance(profiles, dict):
        raise InstallerError('"profiles" field must be an object')

    profile_name = f"Ornithe ({loader_type.localized_name()}) {version.id}"
    if profile_name in profiles:
        existing = profiles[profile_name]
        if not isinstance(existing, dict):
            raise InstallerError(
                f"Cannot update profile of name {profile_name} because it is not an object!"
            )
        existing["lastVersionId"] = name
    else:
        now = _utc_now()
        profiles[profile_name] = {
            "name": profile_name,
            "type": "custom",
            "created": now,
            "lastUsed": now,
            "icon": icon_data_uri(icon_bytes),
            "lastVersionId": name,
        }

    try:
        path.write_text(
            json.dumps(document, separators=(",", ":"), ensure_ascii=False), encoding="utf-8"
        )
    except OSError as exc:
        raise InstallerError(repr(exc)) from exc


def install(
    version: MinecraftVersion,
    loader_type: LoaderType,
    loader_version: LoaderVersion,
    location: str | Path,
    create_profile: bool,
    icon_bytes: bytes = b"",
) -> None:
    """Install the vanilla and Ornithe version folders into a game directory."""
    location = Path(location)
    try:
        location.mkdir(parents=True, exist_ok=True)
        location = location.resolve(strict=True)
    except OSError as exc:
        raise InstallerError(repr(exc)) from exc
    log.info("Installing Minecraft client at %s", location)

    log.info("Fetching launch jsons..")
    vanilla_launch_json = manifest.fetch_launch_json(version)
    ornithe_launch_json = meta.fetch_launch_json(
        GameSide.CLIENT, version, loader_type, loader_version
    )

    log.info("Setting up destination..")
    vanilla_profile_name = f"{version.id}-vanilla"
    profile_name = f"{loader_type.value}-loader-{loader_version.version}-{version.id}-ornithe"

    versions_dir = location / "versions"
    vanilla_profile_dir = versions_dir / vanilla_profile_name
    profile_dir = versions_dir / profile_name

    try:
        for directory in (vanilla_profile_dir, profile_dir):
            if directory.exists():
                shutil.rmtree(directory)
    except OSError as exc:
        raise InstallerError(repr(exc)) from exc

    log.info("Creating files..")
    create_empty_jar(vanilla_profile_dir, vanilla_profile_name)
    create_empty_jar(profile_dir, profile_name)

    try:
        (vanilla_profile_dir / f"{vanilla_profile_name}.json").write_text(
            vanilla_launch_json, encoding="utf-8"
        )
        (profile_dir / f"{profile_name}.json").write_text(ornithe_launch_json, encoding="utf-8")
    except OSError as exc:
        raise InstallerError(repr(exc)) from exc

    if create_profile:
        update_profiles(location, profile_name, version, loader_type, icon_bytes)