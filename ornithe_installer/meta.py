"""Loader, intermediary and profile metadata from the Ornithe meta server."""

from __future__ import annotations

import enum
import json
from dataclasses import dataclass
from typing import Any, Iterable

import requests

from .errors import InstallerError
from .manifest import MinecraftVersion
from .net import GameSide, get_session

META_URL = "https://meta.ornithemc.net"
ORNITHE_MAVEN_URL = "https://maven.ornithemc.net/releases"
CALAMUS_INTERMEDIARY = "net.ornithemc:calamus-intermediary"


def _get_json(url: str) -> Any:
    try:
        return get_session().get(url).json()
    except (requests.RequestException, ValueError) as exc:
        raise InstallerError(repr(exc)) from exc


def _field(data: Any, key: str, kind: type) -> Any:
    if not isinstance(data, dict) or key not in data:
        raise InstallerError(f"missing field `{key}`")
    value = data[key]
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise InstallerError(f"invalid type for field `{key}`")
    return value


class LoaderType(enum.Enum):
    """A supported mod loader; the value is its short name."""

    FABRIC = "fabric"
    QUILT = "quilt"

    def localized_name(self) -> str:
        return {LoaderType.FABRIC: "Fabric", LoaderType.QUILT: "Quilt"}[self]

    def maven_uid(self) -> str:
        return {
            LoaderType.FABRIC: "net.fabricmc.fabric-loader",
            LoaderType.QUILT: "org.quiltmc.quilt-loader",
        }[self]

    def maven_name_start(self) -> str:
        return {
            LoaderType.FABRIC: "net.fabricmc:fabric-loader",
            LoaderType.QUILT: "org.quiltmc:quilt-loader",
        }[self]


@dataclass
class LoaderVersion:
    version: str
    stable: bool
    maven: str
    separator: str
    build: int
    version_no_side: str

    def is_beta(self) -> bool:
        return "-" in self.version

    def is_stable(self) -> bool:
        return not self.is_beta()


@dataclass
class IntermediaryVersion:
    version: str
    stable: bool
    maven: str
    version_no_side: str


@dataclass
class ProfileLibrary:
    name: str
    url: str


def loader_version_from_json(data: Any) -> LoaderVersion:
    """Build a loader version from its meta JSON object."""
    return LoaderVersion(
        version=_field(data, "version", str),
        stable=_field(data, "stable", bool),
        maven=_field(data, "maven", str),
        separator=_field(data, "separator", str),
        build=_field(data, "build", int),
        version_no_side=_field(data, "versionNoSide", str),
    )


def intermediary_version_from_json(data: Any) -> IntermediaryVersion:
    """Build an intermediary version from its meta JSON object."""
    return IntermediaryVersion(
        version=_field(data, "version", str),
        stable=_field(data, "stable", bool),
        maven=_field(data, "maven", str),
        version_no_side=_field(data, "versionNoSide", str),
    )


def launch_json_endpoint(side: GameSide) -> str:
    """The meta endpoint template for a launch JSON of ``side``."""
    if side is GameSide.CLIENT:
        return "/v3/versions/{}-loader/{}/{}/profile/json"
    return "/v3/versions/{}-loader/{}/{}/server/json"


def remap_libraries(launch_json: Any) -> Any:
    """Point intermediary entries of a ``libraries`` mapping at calamus intermediary.

    The document is changed in place and returned.
    """
    libraries = launch_json.get("libraries") if isinstance(launch_json, dict) else None
    if not isinstance(libraries, dict):
        return launch_json
    for library in libraries.values():
        if not isinstance(library, dict):
            continue
        name = library.get("name")
        if not isinstance(name, str):
            continue
        for prefix in ("net.fabricmc:intermediary", "org.quiltmc:hashed"):
            if name.startswith(prefix):
                library["name"] = name.replace(prefix, CALAMUS_INTERMEDIARY)
                library["url"] = ORNITHE_MAVEN_URL
    return launch_json


def fetch_launch_json(
    side: GameSide,
    version: MinecraftVersion,
    loader_type: LoaderType,
    loader_version: LoaderVersion,
) -> str:
    """Fetch the loader launch JSON for ``side`` as pretty text."""
    url = META_URL + launch_json_endpoint(side).format(
        loader_type.value, version.get_id(side), loader_version.version
    )
    document = remap_libraries(_get_json(url))
    return json.dumps(document, indent=2, ensure_ascii=False)


def fetch_loader_versions_for(loader_type: LoaderType) -> list[LoaderVersion]:
    """Fetch all versions of one loader, newest first."""
    data = _get_json(f"{META_URL}/v3/versions/{loader_type.value}-loader")
    if not isinstance(data, list):
        raise InstallerError("expected a list of loader versions")
    return [loader_version_from_json(entry) for entry in data]


def fetch_loader_versions() -> dict[LoaderType, list[LoaderVersion]]:
    """Fetch the versions of every supported loader."""
    return {loader: fetch_loader_versions_for(loader) for loader in LoaderType}


def fetch_intermediary_versions() -> dict[str, IntermediaryVersion]:
    """Fetch intermediary versions keyed by their version id."""
    data = _get_json(f"{META_URL}/v3/versions/intermediary")
    if not isinstance(data, list):
        raise InstallerError("expected a list of intermediary versions")
    versions = (intermediary_version_from_json(entry) for entry in data)
    return {version.version: version for version in versions}


def libraries_after_loader(
    libraries: Iterable[ProfileLibrary], loader_type: LoaderType
) -> list[ProfileLibrary]:
    """Return the libraries listed after the loader's own artifact."""
    out: list[ProfileLibrary] = []
    loader_found = False
    for library in libraries:
        if loader_found:
            out.append(library)
        elif library.name.startswith(loader_type.maven_name_start()):
            loader_found = True
    return out


def fetch_profile_libraries(
    version: IntermediaryVersion,
    loader_type: LoaderType,
    loader_version: LoaderVersion,
) -> list[ProfileLibrary]:
    """Fetch the loader's extra libraries for a profile."""
    url = (
        f"{META_URL}/v3/versions/{loader_type.value}-loader/"
        f"{version.version}/{loader_version.version}/profile/json"
    )
    profile = _get_json(url)
    _field(profile, "id", str)
    libraries = [
        ProfileLibrary(name=_field(entry, "name", str), url=_field(entry, "url", str))
        for entry in _field(profile, "libraries", list)
    ]
    return libraries_after_loader(libraries, loader_type)