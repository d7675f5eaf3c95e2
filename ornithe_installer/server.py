"""Installation and launching of an Ornithe dedicated server."""

from __future__ import annotations

import json
import logging
import shutil
import subprocess
import zipfile
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Iterable

from . import meta
from .errors import InstallerError
from .manifest import MinecraftVersion
from .meta import LoaderType, LoaderVersion
from .net import GameSide, download_file

log = logging.getLogger(__name__)

FABRIC_SERVER_LAUNCHER = "net.fabricmc.loader.launch.server.FabricServerLauncher"
_FABRIC_LOADER_PATTERN = "net\\.fabricmc:fabric-loader:.*"
_MANIFEST_PATH = "META-INF/MANIFEST.MF"
_MAX_MANIFEST_LINE = 72


def wrap_manifest_line(line: str) -> str:
    """Wrap a jar manifest line so that no physical line exceeds 72 characters."""
    pieces: list[str] = []
    count = 0
    for char in line:
        pieces.append(char)
        count += 1
        if count == _MAX_MANIFEST_LINE:
            pieces.append("\r\n ")
            count = 1
    return "".join(pieces)


def split_artifact(artifact: str) -> str:
    """Turn ``group:name:version`` into its repository-relative jar path."""
    parts = artifact.split(":", 2)
    if len(parts) < 3:
        raise InstallerError(f"Invalid artifact coordinates: {artifact}")
    group, name, version = parts
    return f"{group.replace('.', '/')}/{name}/{version}/{name}-{version}.jar"


def read_jar_manifest_attribute(jar_file: str | Path, attribute: str) -> str:
    """Read the value of ``attribute`` from a jar's manifest."""
    prefix = f"{attribute}: "
    try:
        with zipfile.ZipFile(jar_file) as jar:
            text = jar.read(_MANIFEST_PATH).decode("utf-8")
    except (OSError, zipfile.BadZipFile, KeyError, UnicodeDecodeError) as exc:
        raise InstallerError(repr(exc)) from exc
    for line in text.split("\n"):
        if line.startswith(prefix):
            return line[len(prefix):]
    raise InstallerError(f"Couldn't find '{prefix}' attribute in jar manifest!")


def download_library(libraries_dir: str | Path, name: str, url: str) -> Path:
    """Download the library ``name`` from the repository at ``url``."""
    relative = split_artifact(name)
    target = Path(libraries_dir) / relative
    download_file(url + relative, target)
    return target


def create_launch_jar(
    version: MinecraftVersion,
    install_location: str | Path,
    loader_type: LoaderType,
    main_class: str,
    launch_main_class: str,
    library_files: Iterable[str | Path],
) -> Path:
    """Write the server launch jar whose manifest carries the class path."""
    install_location = Path(install_location)
    jar_out = install_location / f"{loader_type.value}-server-launch.jar"

    entries = []
    for library in library_files:
        try:
            relative = Path(library).relative_to(install_location)
        except ValueError as exc:
            raise InstallerError(repr(exc)) from exc
        entries.append(str(relative).replace("\\", "/"))
    class_path = ("Class-Path: " + "".join(f"{entry} " for entry in entries)).rstrip()

    lines = [
        "Manifest-Version: 1.0",
        wrap_manifest_line(f"Main-Class: {launch_main_class}"),
        wrap_manifest_line(class_path),
        wrap_manifest_line(f"Minecraft-Version: {version.id}\r"),
    ]
    manifest_text = "".join(f"{line}\r\n" for line in lines)

    try:
        jar_out.unlink(missing_ok=True)
        with zipfile.ZipFile(jar_out, "w", zipfile.ZIP_DEFLATED) as jar:
            jar.writestr(_MANIFEST_PATH, manifest_text.encode("utf-8"))
            jar.writestr(zipfile.ZipInfo("META-INF/"), b"")
            if loader_type is LoaderType.FABRIC:
                jar.writestr(
                    "fabric-server-launch.properties",
                    f"launch.mainClass={main_class}\n".encode("utf-8"),
                )
    except OSError as exc:
        raise InstallerError(repr(exc)) from exc
    return jar_out


def _library_entries(launch_json: dict) -> list[tuple[str, str]]:
    libraries = launch_json.get("libraries")
    if not isinstance(libraries, list):
        raise InstallerError("No libraries were specified")
    entries = []
    for library in libraries:
        name = library.get("name") if isinstance(library, dict) else None
        if not isinstance(name, str):
            raise InstallerError("Library had no name!")
        url = library.get("url")
        if not isinstance(url, str):
            raise InstallerError("Library had no url!")
        entries.append((name, url))
    return entries


def _download_libraries(libraries_dir: Path, entries: list[tuple[str, str]]) -> list[Path]:
    with ThreadPoolExecutor(max_workers=8) as pool:
        futures = [pool.submit(download_library, libraries_dir, n, u) for n, u in entries]
        downloaded = []
        for future in futures:
            try:
                downloaded.append(future.result())
            except InstallerError as exc:
                raise InstallerError("Failed to download libraries: " + exc.message) from exc
    return downloaded


def _install_path(
    version: MinecraftVersion,
    loader_type: LoaderType,
    loader_version: LoaderVersion,
    location: Path,
    install_server: bool,
) -> None:
    try:
        location.mkdir(parents=True, exist_ok=True)
        location = location.resolve(strict=True)
        log.info(
            "Installing server for %s using %s Loader %s to %s",
            version.id,
            loader_type.localized_name(),
            loader_version.version,
            location,
        )
        for stale in (location / ".fabric", location / ".quilt"):
            if stale.exists():
                shutil.rmtree(stale)
    except OSError as exc:
        raise InstallerError(repr(exc)) from exc

    launch_json_text = meta.fetch_launch_json(GameSide.SERVER, version, loader_type, loader_version)
    log.info("Installing libraries")
    launch_json = json.loads(launch_json_text)
    if not isinstance(launch_json, dict):
        raise InstallerError(
            "Cannot create server installation due to server endpoint returning wrong type."
        )

    main_class = ""
    if loader_type is LoaderType.FABRIC:
        main_class = launch_json.get("mainClass")
        if not isinstance(main_class, str):
            raise InstallerError("Could not find main class entry")
        launch_main_class = FABRIC_SERVER_LAUNCHER
    else:
        launch_main_class = launch_json.get("launcherMainClass")
        if not isinstance(launch_main_class, str):
            raise InstallerError("Could not find main class entry")

    entries = _library_entries(launch_json)
    fabric_loader_artifact = None
    for name, _ in entries:
        if _FABRIC_LOADER_PATTERN in name:
            fabric_loader_artifact = name

    libraries_dir = location / "libraries"
    downloaded = _download_libraries(libraries_dir, entries)
    log.info("Downloaded %d libraries!", len(downloaded))

    if fabric_loader_artifact is not None:
        loader_jar = libraries_dir / split_artifact(fabric_loader_artifact)
        launch_main_class = read_jar_manifest_attribute(loader_jar, "Main-Class")

    create_launch_jar(
        version, location, loader_type, main_class, launch_main_class, downloaded
    )

    if install_server:
        log.info("Downloading server jar")
        download = version.get_jar_download_url(GameSide.SERVER)
        download_file(download.url, location / "server.jar")


def install(
    version: MinecraftVersion,
    loader_type: LoaderType,
    loader_version: LoaderVersion,
    location: str | Path,
    install_server: bool,
) -> None:
    """Install the server libraries and launch jar into ``location``."""
    location = Path(location)
    _install_path(version, loader_type, loader_version, location, install_server)
    log.info(
        "Installed Ornithe Server for Minecraft %s using %s Loader %s to %s",
        version.id,
        loader_type.localized_name(),
        loader_version.version,
        location,
    )


def install_and_run(
    version: MinecraftVersion,
    loader_type: LoaderType,
    loader_version: LoaderVersion,
    location: str | Path,
    java: str | Path | None = None,
    args: Iterable[str] | None = None,
) -> None:
    """Install the server if needed, then run it in the foreground."""
    location = Path(location)
    launch_jar = location / f"{loader_type.value}-server-launch.jar"

    needs_install = True
    if launch_jar.exists():
        try:
            needs_install = read_jar_manifest_attribute(launch_jar, "Minecraft-Version") != version.id
        except InstallerError:
            needs_install = True

    if needs_install:
        _install_path(version, loader_type, loader_version, location, True)

    java_binary = str(java) if java is not None else "java"
    try:
        jar = launch_jar.resolve(strict=True)
        command = [java_binary, *(args or ()), "-jar", str(jar), "nogui"]
        subprocess.run(command, cwd=location, check=False)
    except OSError as exc:
        raise InstallerError(repr(exc)) from exc