"""Minecraft version manifests and launch descriptions."""

from __future__ import annotations

import copy
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import requests

from .errors import InstallerError
from .net import GameSide, get_session

LAUNCHER_META_URL = "https://skyrising.github.io/mc-versions/version_manifest.json"
VERSION_META_URL = "https://skyrising.github.io/mc-versions/version/manifest/{}.json"


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


def _parse_time(text: str) -> datetime:
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        moment = datetime.fromisoformat(text)
    except ValueError as exc:
        raise InstallerError(f"invalid timestamp {text!r}") from exc
    if moment.tzinfo is None:
        raise InstallerError(f"timestamp without offset {text!r}")
    return moment.astimezone(timezone.utc)


@dataclass
class LatestVersions:
    old_alpha: str
    classic_server: str
    alpha_server: str
    old_beta: str
    snapshot: str
    release: str
    pending: str


@dataclass
class MinecraftVersion:
    id: str
    type: str
    url: str
    release_time: datetime
    details: str

    def get_id(self, side: GameSide) -> str:
        """The version id used by intermediary metadata for ``side``."""
        if fetch_version_details(self).shared_mappings:
            return self.id
        return f"{self.id}-{side.id()}"

    def get_jar_download_url(self, side: GameSide) -> "VersionDownload":
        """The download entry of the game jar for ``side``."""
        return fetch_version_details(self).downloads[side]

    def is_snapshot(self) -> bool:
        return self.type == "snapshot"

    def is_historical(self) -> bool:
        return not self.is_release() and not self.is_snapshot() and self.type != "pending"

    def is_release(self) -> bool:
        return self.type == "release"


@dataclass
class VersionManifest:
    latest: LatestVersions
    versions: list[MinecraftVersion]


@dataclass
class VersionDownload:
    sha1: str
    size: int
    url: str


@dataclass
class VersionDetailsManifest:
    type: str
    url: str


@dataclass
class VersionDetails:
    manifests: list[VersionDetailsManifest]
    shared_mappings: bool
    normalized_version: str
    downloads: dict[GameSide, VersionDownload]


def version_from_json(data: Any) -> MinecraftVersion:
    """Build a version entry from its manifest JSON object."""
    return MinecraftVersion(
        id=_field(data, "id", str),
        type=_field(data, "type", str),
        url=_field(data, "url", str),
        release_time=_parse_time(_field(data, "releaseTime", str)),
        details=_field(data, "details", str),
    )


def _download_from_json(data: Any) -> VersionDownload:
    return VersionDownload(
        sha1=_field(data, "sha1", str),
        size=_field(data, "size", int),
        url=_field(data, "url", str),
    )


def details_from_json(data: Any) -> VersionDetails:
    """Build version details from their JSON object."""
    downloads = _field(data, "downloads", dict)
    return VersionDetails(
        manifests=[
            VersionDetailsManifest(type=_field(m, "type", str), url=_field(m, "url", str))
            for m in _field(data, "manifests", list)
        ],
        shared_mappings=_field(data, "sharedMappings", bool),
        normalized_version=_field(data, "normalizedVersion", str),
        downloads={
            GameSide.CLIENT: _download_from_json(_field(downloads, "client", dict)),
            GameSide.SERVER: _download_from_json(_field(downloads, "server", dict)),
        },
    )


def _latest_from_json(data: Any) -> LatestVersions:
    return LatestVersions(
        old_alpha=_field(data, "old_alpha", str),
        classic_server=_field(data, "classic_server", str),
        alpha_server=_field(data, "alpha_server", str),
        old_beta=_field(data, "old_beta", str),
        snapshot=_field(data, "snapshot", str),
        release=_field(data, "release", str),
        pending=_field(data, "pending", str),
    )


def fetch_versions() -> VersionManifest:
    """Fetch the list of all known Minecraft versions."""
    data = _get_json(LAUNCHER_META_URL)
    return VersionManifest(
        latest=_latest_from_json(_field(data, "latest", dict)),
        versions=[version_from_json(v) for v in _field(data, "versions", list)],
    )


def fetch_version_details(version: MinecraftVersion) -> VersionDetails:
    """Fetch the details document of ``version``."""
    return details_from_json(_get_json(version.details))


def merge_manifest(version_json: dict, manifest: dict) -> None:
    """Fill ``version_json`` in place with entries of ``manifest`` it lacks."""
    for key, value in manifest.items():
        if key in version_json:
            existing = version_json[key]
            if existing != value and isinstance(existing, dict) and isinstance(value, dict):
                merge_manifest(existing, value)
        else:
            version_json[key] = copy.deepcopy(value)


def fetch_launch_json(version: MinecraftVersion) -> str:
    """Assemble the vanilla launch JSON for ``version`` as pretty text."""
    launch = _get_json(VERSION_META_URL.format(version.id))
    if not isinstance(launch, dict):
        raise InstallerError("Error")
    for entry in fetch_version_details(version).manifests:
        manifest = _get_json(entry.url)
        if isinstance(manifest, dict):
            merge_manifest(launch, manifest)
    launch["id"] = f"{version.id}-vanilla"
    return json.dumps(launch, indent=2, ensure_ascii=False)


def find_lwjgl_version(version: MinecraftVersion) -> str:
    """Find the LWJGL version that ``version`` is launched with."""
    for entry in fetch_version_details(version).manifests:
        manifest = _get_json(entry.url)
        libraries = manifest.get("libraries") if isinstance(manifest, dict) else None
        if not isinstance(libraries, list):
            continue
        for library in libraries:
            name = library.get("name") if isinstance(library, dict) else None
            if not isinstance(name, str):
                continue
            parts = name.split(":")
            if len(parts) > 2 and parts[1] == "lwjgl":
                return parts[2]
    raise InstallerError(f"Unable to find lwjgl version for Minecraft {version.id}")