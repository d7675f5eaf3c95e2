import contextlib
import json
import zipfile
from datetime import datetime, timezone

import pytest
import responses

from ornithe_installer.errors import InstallerError
from ornithe_installer.manifest import MinecraftVersion
from ornithe_installer.meta import LoaderType, LoaderVersion
from ornithe_installer.mmc_pack import (
    DirectoryWriter,
    PackTemplates,
    ZipArchiveWriter,
    build_mmc_launch_json,
    install,
    library_patch,
    load_templates,
    transform_intermediary_patch,
    transform_pack_json,
)

DETAILS_URL = "https://example.com/details/1.8.9.json"
MANIFEST_URL = "https://example.com/manifest/1.8.9.json"
VERSION_META_URL = "https://skyrising.github.io/mc-versions/version/manifest/1.8.9.json"
INTERMEDIARY_URL = "https://meta.ornithemc.net/v3/versions/intermediary"
PROFILE_URL = "https://meta.ornithemc.net/v3/versions/fabric-loader/1.8.9/0.16.10/profile/json"

LWJGL = "2.9.4-nightly-20150209"
EXTRA_LIBRARY = "net.fabricmc:sponge-mixin:0.15.4"

DETAILS = {
    "manifests": [{"type": "client", "url": MANIFEST_URL}],
    "sharedMappings": True,
    "normalizedVersion": "1.8.9",
    "downloads": {
        "client": {"sha1": "a", "size": 1, "url": "https://example.com/client.jar"},
        "server": {"sha1": "b", "size": 2, "url": "https://example.com/server.jar"},
    },
}

MANIFEST = {
    "id": "1.8.9",
    "libraries": [
        {"name": f"org.lwjgl.lwjgl:lwjgl:{LWJGL}"},
        {"name": "org.ow2.asm:asm-all:4.1"},
        {"name": "com.google.code.gson:gson:2.2.4"},
    ],
    "downloads": {"client": {"url": "https://example.com/client.jar"}},
    "mainClass": "net.minecraft.client.main.Main",
    "minecraftArguments": "--username ${auth_player_name}",
    "assetIndex": {"id": "1.8"},
    "releaseTime": "2015-12-03T09:24:39+00:00",
    "type": "release",
}

PROFILE = {
    "id": "fabric-loader-0.16.10-1.8.9",
    "libraries": [
        {"name": "net.ornithemc:calamus-intermediary:1.8.9", "url": "https://example.com/"},
        {"name": "net.fabricmc:fabric-loader:0.16.10", "url": "https://example.com/"},
        {"name": EXTRA_LIBRARY, "url": "https://example.com/"},
    ],
}

PACK_TEMPLATE = json.dumps(
    {
        "components": [
            {"uid": "net.minecraft", "version": "${mc_version}"},
            {"uid": "net.fabricmc.intermediary", "version": "${intermediary_ver}"},
            {"uid": "${loader_uid}", "version": "${loader_version}", "cachedName": "${loader_name}"},
            {"uid": "${lwjgl_uid}", "version": "${lwjgl_version}", "major": "${lwjgl_major_ver}"},
        ],
        "formatVersion": 1,
    }
)

PATCH_TEMPLATE = json.dumps(
    {
        "uid": "net.fabricmc.intermediary",
        "version": "${intermediary_ver}",
        "libraries": [{"name": "${intermediary_maven}:${intermediary_ver}"}],
        "requires": [{"uid": "net.minecraft", "equals": "${mc_version}"}],
    }
)

INSTANCE_TEMPLATE = "name=Ornithe ${mc_version}\niconKey=ornithe\n"


@pytest.fixture
def version():
    return MinecraftVersion(
        id="1.8.9",
        type="release",
        url="https://example.com/1.8.9.json",
        release_time=datetime(2015, 12, 3, tzinfo=timezone.utc),
        details=DETAILS_URL,
    )


@pytest.fixture
def loader_version():
    return LoaderVersion(
        version="0.16.10",
        stable=True,
        maven="net.fabricmc:fabric-loader:0.16.10",
        separator=".",
        build=10,
        version_no_side="0.16.10",
    )


@pytest.fixture
def templates():
    return PackTemplates(
        intermediary_patch=PATCH_TEMPLATE,
        instance_config=INSTANCE_TEMPLATE,
        mmc_pack=PACK_TEMPLATE,
        icon=b"\x89PNG\r\n\x1a\nicon",
    )


@contextlib.contextmanager
def _mocked(intermediary_version="1.8.9", maven="net.ornithemc:calamus-intermediary:1.8.9"):
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        rsps.add(responses.GET, DETAILS_URL, json=DETAILS)
        rsps.add(responses.GET, MANIFEST_URL, json=MANIFEST)
        rsps.add(responses.GET, VERSION_META_URL, json={"id": "1.8.9"})
        rsps.add(
            responses.GET,
            INTERMEDIARY_URL,
            json=[
                {
                    "version": intermediary_version,
                    "stable": True,
                    "maven": maven,
                    "versionNoSide": intermediary_version,
                }
            ],
        )
        rsps.add(responses.GET, PROFILE_URL, json=PROFILE)
        yield rsps


def test_transform_intermediary_patch_fills_all_placeholders():
    result = json.loads(
        transform_intermediary_patch(PATCH_TEMPLATE, "1.8.9", "1.8.9", "net.ornithemc:calamus-intermediary")
    )
    assert result["version"] == "1.8.9"
    assert result["libraries"][0]["name"] == "net.ornithemc:calamus-intermediary:1.8.9"
    assert result["requires"][0]["equals"] == "1.8.9"


def test_transform_pack_json_lwjgl2(loader_version):
    result = json.loads(
        transform_pack_json(PACK_TEMPLATE, "1.8.9", LoaderType.FABRIC, loader_version, LWJGL, "1.8.9")
    )
    components = result["components"]
    assert components[0]["version"] == "1.8.9"
    assert components[2] == {
        "uid": "net.fabricmc.fabric-loader",
        "version": "0.16.10",
        "cachedName": "Fabric Loader",
    }
    assert components[3]["uid"] == "org.lwjgl"
    assert components[3]["major"] == "2"
    assert "${" not in json.dumps(result)


def test_transform_pack_json_lwjgl3_and_quilt(loader_version):
    result = json.loads(
        transform_pack_json(PACK_TEMPLATE, "1.14", LoaderType.QUILT, loader_version, "3.2.2", "1.14")
    )
    assert result["components"][3]["uid"] == "org.lwjgl3"
    assert result["components"][2]["uid"] == "org.quiltmc.quilt-loader"
    assert result["components"][2]["cachedName"] == "Quilt Loader"


def test_transform_pack_json_rejects_empty_lwjgl(loader_version):
    with pytest.raises(InstallerError):
        transform_pack_json(PACK_TEMPLATE, "1.8.9", LoaderType.FABRIC, loader_version, "", "1.8.9")


def test_build_mmc_launch_json_legacy_arguments():
    result = json.loads(build_mmc_launch_json(MANIFEST, "1.8.9", LWJGL))
    assert list(result) == [
        "assetIndex",
        "compatibleJavaMajors",
        "formatVersion",
        "libraries",
        "mainClass",
        "mainJar",
        "minecraftArguments",
        "name",
        "releaseTime",
        "requires",
        "type",
        "uid",
        "version",
    ]
    assert [lib["name"] for lib in result["libraries"]] == ["com.google.code.gson:gson:2.2.4"]
    assert result["mainJar"]["name"] == "com.mojang:minecraft:1.8.9:client"
    assert result["mainJar"]["downloads"]["artifact"] == MANIFEST["downloads"]["client"]
    assert result["minecraftArguments"] == MANIFEST["minecraftArguments"]
    assert result["requires"] == [{"suggests": LWJGL, "uid": "org.lwjgl"}]
    assert result["compatibleJavaMajors"] == [8, 17, 21]


def test_build_mmc_launch_json_game_arguments_and_traits():
    vanilla = dict(
        MANIFEST,
        mainClass="net.minecraft.launchwrapper.Launch",
        arguments={"game": ["--username", "${auth_player_name}", {"rules": []}]},
    )
    result = json.loads(build_mmc_launch_json(vanilla, "1.13", "3.1.6"))
    assert result["minecraftArguments"] == "--username ${auth_player_name}"
    assert result["+traits"] == ["texturepacks", "FirstThreadOnMacOs"]
    assert result["requires"][0]["uid"] == "org.lwjgl3"


def test_build_mmc_launch_json_empty_game_arguments_keep_legacy():
    vanilla = dict(MANIFEST, arguments={"game": []})
    result = json.loads(build_mmc_launch_json(vanilla, "1.8.9", LWJGL))
    assert result["minecraftArguments"] == MANIFEST["minecraftArguments"]
    assert "+traits" not in result


def test_build_mmc_launch_json_requires_client_download():
    vanilla = {k: v for k, v in MANIFEST.items() if k != "downloads"}
    with pytest.raises(InstallerError):
        build_mmc_launch_json(vanilla, "1.8.9", LWJGL)


def test_library_patch_is_consistent():
    uid, patch, component = library_patch(EXTRA_LIBRARY, "https://example.com/")
    document = json.loads(patch)
    assert document["uid"] == uid == component["uid"]
    assert document["libraries"] == [{"name": EXTRA_LIBRARY, "url": "https://example.com/"}]
    assert document["name"] == component["cachedName"] == "sponge-mixin"
    assert document["version"] == component["cachedVersion"]
    assert EXTRA_LIBRARY.startswith(component["cachedVersion"])


@pytest.mark.parametrize("name", ["nocolon", "one:colon"])
def test_library_patch_rejects_short_names(name):
    with pytest.raises(InstallerError):
        library_patch(name, "https://example.com/")


def test_load_templates_round_trip(tmp_path):
    (tmp_path / "patches").mkdir()
    (tmp_path / "patches" / "net.fabricmc.intermediary.json").write_text(PATCH_TEMPLATE)
    (tmp_path / "instance.cfg").write_text(INSTANCE_TEMPLATE)
    (tmp_path / "mmc-pack.json").write_text(PACK_TEMPLATE)
    (tmp_path / "icon.png").write_bytes(b"icon-bytes")
    loaded = load_templates(tmp_path)
    assert loaded == PackTemplates(PATCH_TEMPLATE, INSTANCE_TEMPLATE, PACK_TEMPLATE, b"icon-bytes")


def test_load_templates_missing_file(tmp_path):
    with pytest.raises(InstallerError):
        load_templates(tmp_path)


def test_directory_writer(tmp_path):
    with DirectoryWriter(tmp_path) as writer:
        writer.create_dir("patches")
        writer.write_file("patches/a.json", "{}")
        writer.write_file("b.bin", b"\x00\x01")
    assert (tmp_path / "patches" / "a.json").read_text() == "{}"
    assert (tmp_path / "b.bin").read_bytes() == b"\x00\x01"


def test_zip_writer_round_trip(tmp_path):
    path = tmp_path / "out.zip"
    with ZipArchiveWriter(path) as writer:
        writer.create_dir("patches")
        writer.write_file("patches/a.json", "{}")
    with zipfile.ZipFile(path) as archive:
        assert archive.getinfo("patches/").is_dir()
        assert archive.read("patches/a.json") == b"{}"


def test_zip_writer_refuses_existing_file(tmp_path):
    path = tmp_path / "out.zip"
    path.write_bytes(b"old")
    with pytest.raises(InstallerError):
        ZipArchiveWriter(path)


def test_install_zip(tmp_path, version, loader_version, templates):
    (tmp_path / "Ornithe-1.8.9.zip").write_bytes(b"stale")
    with _mocked():
        output = install(version, LoaderType.FABRIC, loader_version, tmp_path, False, True, templates)
    assert output == tmp_path.resolve() / "Ornithe-1.8.9.zip"
    with zipfile.ZipFile(output) as archive:
        names = set(archive.namelist())
        assert {
            "instance.cfg",
            "ornithe.png",
            "patches/",
            "patches/net.fabricmc.intermediary.json",
            "patches/net.minecraft.json",
            "mmc-pack.json",
        } <= names
        assert archive.read("ornithe.png") == templates.icon
        assert archive.read("instance.cfg").decode().startswith("name=Ornithe 1.8.9\n")

        patch = json.loads(archive.read("patches/net.fabricmc.intermediary.json"))
        assert patch["libraries"][0]["name"] == "net.ornithemc:calamus-intermediary:1.8.9"

        minecraft = json.loads(archive.read("patches/net.minecraft.json"))
        assert [lib["name"] for lib in minecraft["libraries"]] == ["com.google.code.gson:gson:2.2.4"]
        assert minecraft["requires"][0]["suggests"] == LWJGL

        pack = json.loads(archive.read("mmc-pack.json"))
        extra = pack["components"][-1]
        assert extra["cachedName"] == "sponge-mixin"
        assert f"patches/{extra['uid']}.json" in names
        assert len(pack["components"]) == 5
        assert pack["components"][2]["version"] == "0.16.10"


def test_install_directory_and_refuses_existing(tmp_path, version, loader_version, templates):
    with _mocked():
        output = install(version, LoaderType.FABRIC, loader_version, tmp_path, False, False, templates)
        assert output == tmp_path.resolve() / "Ornithe-1.8.9"
        assert (output / "patches").is_dir()
        assert (output / "ornithe.png").read_bytes() == templates.icon
        pack = json.loads((output / "mmc-pack.json").read_text())
        assert pack["components"][-1]["cachedName"] == "sponge-mixin"
        with pytest.raises(InstallerError, match="Instance already exists"):
            install(version, LoaderType.FABRIC, loader_version, tmp_path, False, False, templates)


def test_install_without_intermediary(tmp_path, version, loader_version, templates):
    with _mocked(intermediary_version="1.7.10", maven="net.ornithemc:calamus-intermediary:1.7.10"):
        with pytest.raises(InstallerError, match="intermediary version"):
            install(version, LoaderType.FABRIC, loader_version, tmp_path, False, True, templates)
    assert not (tmp_path / "Ornithe-1.8.9.zip").exists()


def test_install_with_bad_maven(tmp_path, version, loader_version, templates):
    with _mocked(maven="net.ornithemc:calamus-intermediary:other"):
        with pytest.raises(InstallerError, match="maven coordinates"):
            install(version, LoaderType.FABRIC, loader_version, tmp_path, False, True, templates)