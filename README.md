# ornithe-installer

A command-line installer for Ornithe, the mod loader toolchain for older
Minecraft versions. It sets up Fabric or Quilt Loader with Ornithe's
intermediary mappings for:

- the official Minecraft launcher (client),
- MultiMC and PrismLauncher (instance directory or importable zip),
- dedicated servers, including installing and starting them in one step.

Version information is fetched from the Ornithe meta server and the
Minecraft version manifests, so a network connection is needed.

## Installation

```
pip install .
```

This provides the `ornithe-installer` command. Run without arguments it
prints its help; `ornithe-installer --version` prints the version.

## Usage

List the Minecraft versions Ornithe supports (releases only by default):

```
ornithe-installer game-versions
ornithe-installer game-versions --show-snapshots --show-historical
```

List loader versions (stable only unless `--show-betas` is given):

```
ornithe-installer loader-versions --loader-type quilt --show-betas
```

Install for the official launcher. The directory defaults to the launcher's
game directory for your platform; `-p/--generate-profile` (`true` or
`false`, default `true`) adds or updates an entry in
`launcher_profiles.json`, which must already exist:

```
ornithe-installer client -m 1.8.9
ornithe-installer client -m 1.8.9 --loader-type quilt --loader-version latest -d /path/to/.minecraft
```

Generate a MultiMC/PrismLauncher instance. `--templates` names a directory
holding `instance.cfg`, `mmc-pack.json`,
`patches/net.fabricmc.intermediary.json` and, optionally, `icon.png`. By
default a zip `Ornithe-<version>.zip` is written into the current directory;
`-z false` writes an `Ornithe-<version>` directory instead, and
`-c true` copies the resulting path to the clipboard (this needs tkinter):

```
ornithe-installer mmc -m 1.12.2 --templates /path/to/templates
ornithe-installer mmc -m 1.12.2 --templates /path/to/templates -z false -d /path/to/instances
```

Install a server into `./server`, optionally downloading the vanilla server
jar, or install and run it directly. `--args` is split on spaces and passed
to Java before `-jar`:

```
ornithe-installer server -m 1.7.10 --download-minecraft
ornithe-installer server -m 1.7.10 run --java /usr/bin/java --args "-Xmx2G"
```

Every installing command accepts `-m/--minecraft-version` (required),
`--loader-type` (`fabric` or `quilt`, default `fabric`) and
`--loader-version` (default `latest`, the first version the meta server
lists). The commands may also be written as long flags: `--client`, `--mmc`
or `--prism`, `--server`, `--list-game-versions` and
`--list-loader-versions`.

After installing, most mods also need the Ornithe Standard Libraries mod in
your mods folder.

## Using it as a library

The installers are plain functions: `ornithe_installer.client.install`,
`ornithe_installer.server.install`, `ornithe_installer.server.install_and_run`
and `ornithe_installer.mmc_pack.install` (which takes a `PackTemplates`, for
example from `ornithe_installer.mmc_pack.load_templates`). Version data comes
from `ornithe_installer.manifest.fetch_versions`,
`ornithe_installer.meta.fetch_loader_versions` and
`ornithe_installer.meta.fetch_intermediary_versions`. Failures are raised as
`ornithe_installer.errors.InstallerError`.

## What it does not do

- There is no graphical installer window; everything is done from the
  command line or from Python.
- The MultiMC/PrismLauncher templates and the Ornithe icon are not shipped
  with the package; supply them with `--templates`. From the command line,
  launcher profiles are created with an empty icon; `client.install` and
  `client.update_profiles` take `icon_bytes` to set one.