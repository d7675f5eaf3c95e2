"""Generation of MultiMC / PrismLauncher instances."""

from __future__ import annotations

import json
import logging
import os
import sys
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from . import manifest, meta
from .errors import InstallerError
from .manifest import MinecraftVersion
from .meta import IntermediaryVersion, LoaderType, LoaderVersion
from .net import GameSide

try:
    import tkinter
except ImportError:  # pragma: no cover - depends on the Python build
    tkinter = None

log = logging.getLogger(__name__)

_GL_WORKAROUND = "\nOverrideCommands=true\nWrapperCommand=env __GL_THREADED_OPTIMIZATIONS=0"
_COMPATIBLE_JAVA_MAJORS = [8, 17, 21]


@dataclass(frozen=True)
class PackTemplates:
    """The text templates an instance is generated from, plus its icon."""

    intermediary_patch: str
    instance_config: str
    mmc_pack: str
    icon: bytes = b""


def load_templates(directory: str | Path) -> PackTemplates:
    """Read the pack templates from a directory.

    The directory holds ``instance.cfg``, ``mmc-pack.json``,
    ``patches/net.fabricmc.intermediary.json`` and optionally ``icon.png``.
    """
    directory = Path(directory)
    icon_path = directory / "icon.png"
    try:
        return PackTemplates(
            intermediary_patch=(directory / "patches" / "net.fabricmc.intermediary.json").read_text(
                encoding="utf-8"
            ),
            instance_config=(directory / "instance.cfg").read_text(encoding="utf-8"),
            mmc_pack=(directory / "mmc-pack.json").read_text(encoding="utf-8"),
            icon=icon_path.read_bytes() if icon_path.is_file() else b"",
        )
    except (OSError, UnicodeDecodeError) as exc:
        raise InstallerError(repr(exc)) from exc


def _as_bytes(data: bytes | str) -> bytes:
    return data.encode("utf-8") if isinstance(data, str) else bytes(data)


class DirectoryWriter:
    """Writes instance files into a plain directory."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def __enter__(self) -> "DirectoryWriter":
        return self

    def __exit__(self, *exc_info: object) -> None:
        return None

    def write_file(self, path: str, data: bytes | str) -> None:
        try:
            (self.root / path).write_bytes(_as_bytes(data))
        except OSError as exc:
            raise InstallerError(repr(exc)) from exc

    def create_dir(self, path: str) -> None:
        try:
            (self.root / path).mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise InstallerError(repr(exc)) from exc


class ZipArchiveWriter:
    """Writes instance files into a new zip archive."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        try:
            self._zip = zipfile.ZipFile(self.path, "x", zipfile.ZIP_DEFLATED)
        except OSError as exc:
            raise InstallerError(repr(exc)) from exc

    def __enter__(self) -> "ZipArchiveWriter":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def write_file(self, path: str, data: bytes | str) -> None:
        try:
            self._zip.writestr(path, _as_bytes(data))
        except (OSError, ValueError) as exc:
            raise InstallerError(repr(exc)) from exc

    def create_dir(self, path: str) -> None:
        info = zipfile.ZipInfo(path.rstrip("/") + "/")
        info.external_attr = (0o40755 << 16) | 0x10
        try:
            self._zip.writestr(info, b"")
        except (OSError, ValueError) as exc:
            raise InstallerError(repr(exc)) from exc

    def close(self) -> None:
        try:
            self._zip.close()
        except OSError as exc:
            raise InstallerError(repr(exc)) from exc


def _lwjgl_major(lwjgl_version: str) -> str:
    if not lwjgl_version:
        raise InstallerError("LWJGL version is empty")
    return lwjgl_version[0]


def _lwjgl_uid(major: str) -> str:
    return "org.lwjgl3" if major == "3" else "org.lwjgl"


def transform_intermediary_patch(
    template: str, version_id: str, intermediary_version: str, intermediary_maven: str
) -> str:
    """Fill in the intermediary patch template."""
    return (
        template.replace("${mc_version}", version_id)
        .replace("${intermediary_ver}", intermediary_version)
        .replace("${intermediary_maven}", intermediary_maven)
    )


def transform_pack_json(
    template: str,
    version_id: str,
    loader_type: LoaderType,
    loader_version: LoaderVersion,
    lwjgl_version: str,
    intermediary_version: str,
) -> str:
    """Fill in the ``mmc-pack.json`` template."""
    major = _lwjgl_major(lwjgl_version)
    return (
        template.replace("${mc_version}", version_id)
        .replace("${intermediary_ver}", intermediary_version)
        .replace("${loader_version}", loader_version.version)
        .replace("${loader_name}", loader_type.localized_name() + " Loader")
        .replace("${loader_uid}", loader_type.maven_uid())
        .replace("${lwjgl_version}", lwjgl_version)
        .replace("${lwjgl_major_ver}", major)
        .replace("${lwjgl_uid}", _lwjgl_uid(major))
    )


def _library_name(library: Any) -> str:
    name = library.get("name") if isinstance(library, dict) else None
    return name if isinstance(name, str) else ""


def build_mmc_launch_json(vanilla_json: Any, version_id: str, lwjgl_version: str) -> str:
    """Build the ``net.minecraft`` patch from a vanilla launch JSON document."""
    if not isinstance(vanilla_json, dict):
        raise InstallerError("Vanilla launch json must be an object")
    downloads = vanilla_json.get("downloads")
    client = downloads.get("client") if isinstance(downloads, dict) else None
    if not isinstance(client, dict):
        raise InstallerError("Vanilla launch json has no client download")
    libraries = vanilla_json.get("libraries")
    if not isinstance(libraries, list):
        raise InstallerError("Vanilla launch json has no libraries")

    kept_libraries = [
        library
        for library in libraries
        if "org.ow2.asm" not in _library_name(library)
        and "org.lwjgl" not in _library_name(library)
    ]

    traits: list[str] = []
    main_class = vanilla_json.get("mainClass")
    if isinstance(main_class, str) and "launchwrapper" in main_class:
        traits.append("texturepacks")

    legacy_arguments = vanilla_json.get("minecraftArguments")
    minecraft_arguments = legacy_arguments if isinstance(legacy_arguments, str) else ""
    arguments = vanilla_json.get("arguments")
    game_arguments = arguments.get("game") if isinstance(arguments, dict) else None
    if isinstance(game_arguments, list) and game_arguments:
        minecraft_arguments = "".join(
            f"{argument} " for argument in game_arguments if isinstance(argument, str)
        ).strip()
        traits.append("FirstThreadOnMacOs")

    document: dict[str, Any] = {
        "assetIndex": vanilla_json.get("assetIndex"),
        "compatibleJavaMajors": list(_COMPATIBLE_JAVA_MAJORS),
        "formatVersion": 1,
        "libraries": kept_libraries,
        "mainClass": main_class,
        "mainJar": {
            "downloads": {"artifact": client},
            "name": f"com.mojang:minecraft:{version_id}:client",
        },
        "minecraftArguments": minecraft_arguments,
        "name": "Minecraft",
        "releaseTime": vanilla_json.get("releaseTime"),
        "requires": [
            {"suggests": lwjgl_version, "uid": _lwjgl_uid(_lwjgl_major(lwjgl_version))}
        ],
        "type": vanilla_json.get("type"),
        "uid": "net.minecraft",
        "version": version_id,
    }
    if traits:
        document["+traits"] = traits
    return json.dumps(document, indent=2, ensure_ascii=False)


def library_patch(name: str, url: str) -> tuple[str, str, dict[str, str]]:
    """Describe an extra library as a pack patch.

    Returns the patch uid, the patch file text and the pack component entry.
    """
    colons = [index for index, char in enumerate(name) if char == ":"]
    if len(colons) < 2:
        raise InstallerError(f"Invalid library name: {name}")
    first, last = colons[0], colons[-1]
    uid = name[:last].replace(":", ".")
    lib_name = name[first + 1 : last]
    version = name[: last + 1]
    patch = (
        f'{{"formatVersion": 1, "libraries": [{{"name": "{name}","url": "{url}"}}], '
        f'"name": "{lib_name}", "type": "release", "uid": "{uid}", "version": "{version}"}}'
    )
    component = {"cachedName": lib_name, "cachedVersion": version, "uid": uid}
    return uid, patch, component


def _loads(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError as exc:
        raise InstallerError(repr(exc)) from exc


def _intermediary_maven(intermediary: IntermediaryVersion) -> str:
    suffix = ":" + intermediary.version
    if not intermediary.maven.endswith(suffix):
        raise InstallerError("Failed to retrieve intermediary maven coordinates")
    return intermediary.maven[: -len(suffix)]


def _copy_to_clipboard(text: str) -> None:
    if tkinter is None:
        raise InstallerError("Failed to copy profile path")
    try:
        root = tkinter.Tk()
    except tkinter.TclError as exc:
        raise InstallerError("Failed to copy profile path") from exc
    try:
        root.withdraw()
        root.clipboard_clear()
        root.clipboard_append(text)
        root.update()
    except tkinter.TclError as exc:
        raise InstallerError("Failed to copy profile path") from exc
    finally:
        root.destroy()


def _uses_gl_workaround() -> bool:
    return os.name == "posix" and sys.platform != "darwin"


def install(
    version: MinecraftVersion,
    loader_type: LoaderType,
    loader_version: LoaderVersion,
    output_dir: str | Path,
    copy_profile_path: bool,
    generate_zip: bool,
    templates: PackTemplates,
) -> Path:
    """Generate an instance as a zip or directory and return its path."""
    output_dir = Path(output_dir)
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
        output_dir = output_dir.resolve(strict=True)
    except OSError as exc:
        raise InstallerError(repr(exc)) from exc

    log.info("Fetching version information...")
    version_id = version.get_id(GameSide.CLIENT)
    intermediary = meta.fetch_intermediary_versions().get(version_id)
    if intermediary is None:
        raise InstallerError("Could not find matching intermediary version")
    intermediary_maven = _intermediary_maven(intermediary)
    lwjgl_version = manifest.find_lwjgl_version(version)

    log.info("Transforming templates...")
    pack_json = _loads(
        transform_pack_json(
            templates.mmc_pack,
            version.id,
            loader_type,
            loader_version,
            lwjgl_version,
            intermediary.version,
        )
    )
    components = pack_json.get("components") if isinstance(pack_json, dict) else None
    if not isinstance(components, list):
        raise InstallerError('"components" field must be an array')
    intermediary_patch = transform_intermediary_patch(
        templates.intermediary_patch, version.id, intermediary.version, intermediary_maven
    )
    minecraft_patch = build_mmc_launch_json(
        _loads(manifest.fetch_launch_json(version)), version.id, lwjgl_version
    )

    if generate_zip:
        output = output_dir / f"Ornithe-{version.id}.zip"
    else:
        output = output_dir / f"Ornithe-{version.id}"
        if output.exists():
            raise InstallerError("Instance already exists")
        try:
            output.mkdir(parents=True)
        except OSError as exc:
            raise InstallerError(repr(exc)) from exc

    log.info("Fetching library information...")
    extra_libraries = meta.fetch_profile_libraries(intermediary, loader_type, loader_version)

    writer: DirectoryWriter | ZipArchiveWriter
    if generate_zip:
        log.info("Generating instance zip...")
        try:
            output.unlink(missing_ok=True)
        except OSError as exc:
            raise InstallerError(repr(exc)) from exc
        writer = ZipArchiveWriter(output)
    else:
        log.info("Generating output files...")
        writer = DirectoryWriter(output)

    with writer:
        instance_cfg = templates.instance_config.replace("${mc_version}", version.id)
        if _uses_gl_workaround():
            instance_cfg += _GL_WORKAROUND
        writer.write_file("instance.cfg", instance_cfg)
        writer.write_file("ornithe.png", templates.icon)
        writer.create_dir("patches")
        writer.write_file("patches/net.fabricmc.intermediary.json", intermediary_patch)
        writer.write_file("patches/net.minecraft.json", minecraft_patch)

        for library in extra_libraries:
            uid, patch, component = library_patch(library.name, library.url)
            writer.write_file(f"patches/{uid}.json", patch)
            components.append(component)

        writer.write_file("mmc-pack.json", json.dumps(pack_json, indent=2, ensure_ascii=False))

    if copy_profile_path:
        _copy_to_clipboard(str(output))

    log.info("Done!")
    return output