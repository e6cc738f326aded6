# fwpackage

`fwpackage` builds and unpacks firmware packages. A package is a
gzip-compressed TAR archive that holds partition images, a PIT file and a
`firmware.xml` manifest that describes them.

This is a library. It installs no commands.

## Installation

```
pip install .
```

## Modules

- `fwpackage.firmware_info` models the `firmware.xml` manifest with the
  dataclasses `FirmwareInfo`, `PlatformInfo`, `DeviceInfo` and `FileInfo`.
  `FirmwareInfo.from_xml` parses a manifest strictly and raises
  `FirmwareFormatError` (a `ValueError`) when an element is missing, repeated
  or unexpected, when the `version` attribute is absent or malformed, or when
  the manifest is for a newer format than `FirmwareInfo.VERSION` (1).
  `FirmwareInfo.to_xml` renders a manifest; file entries are named with
  `clashless_filename` and the PIT entry by its base name.
- `fwpackage.packaging` works with archives:
  - `build_package(package_path, firmware_info)` writes a gzip-compressed TAR
    holding each file of `firmware_info.file_infos`, the PIT file and a
    generated `firmware.xml`. On failure the partial output is removed.
  - `extract_package(package_path, destination)` unpacks a package (gzip or
    plain TAR) into a `PackageData` and reads its `firmware.xml`.
  - `create_tar`, `write_tar_entry` and `extract_tar` work on the TAR layer
    over binary streams.
  - `PackageData` holds a `FirmwareInfo` and a list of
    `(entry name, path on disk)` pairs. Extracted files go into
    `PackageData.directory`, or the system temporary directory when that is
    `None`. `clear()` deletes them; used as a context manager it clears on
    exit. `remove_all_files()` forgets them without deleting.

  Failures raise `PackagingError`. The name `firmware.xml` is reserved, and
  archives holding links or directories are rejected.
- `fwpackage.naming` chooses archive entry names that do not clash:
  `base_name` takes the last path component, `clashless_filename(paths, index)`
  names an entry from the list (renaming clashes to `name-N.ext`) and
  `clashless_name_for(paths, filename)` names an extra entry such as the PIT
  file.
- `fwpackage.arguments` parses option lists against a table of names and
  `ArgumentType`s (flag, string, unsigned integer), with short aliases
  (`-x`), long aliases and the wildcards `%d` (any unsigned integer name) and
  `%s` (any other name). `Arguments.parse` returns the `Argument` objects
  found and raises `ArgumentError` for unknown, duplicate or incomplete
  options; `Arguments.get` looks one up by name.
- `fwpackage.packets` decodes 8-byte little-endian response packets:
  `SendFilePartResponse`, `SessionSetupResponse`, `PitFileResponse` and
  `DumpResponse`. `unpack` raises `PacketError` when the response type is not
  the expected one.

## Example

```python
from pathlib import Path

from fwpackage.firmware_info import DeviceInfo, FileInfo, FirmwareInfo, PlatformInfo
from fwpackage.packaging import PackageData, build_package, extract_package

info = FirmwareInfo(
    name="Example ROM",
    version="1.0",
    platform_info=PlatformInfo(name="Android", version="4.0"),
    developers=["Someone"],
    device_infos=[DeviceInfo(manufacturer="Acme", product="X1", name="Phone")],
    pit_filename="images/device.pit",
    file_infos=[FileInfo(partition_id=5, filename="images/kernel.img")],
)
build_package("example.tar.gz", info)  # the listed files must exist

Path("unpacked").mkdir(exist_ok=True)
with PackageData(directory=Path("unpacked")) as package:
    extract_package("example.tar.gz", package)
    print(package.firmware_info.name)
    for entry_name, path in package.files:
        print(entry_name, path)
```

## What it does not do

The package does not talk to devices: it has no USB transport and sends no
requests; `fwpackage.packets` only decodes response bytes handed to it. It
does not read or interpret PIT files, which are packed as opaque files. There
is no command-line tool or graphical interface; `fwpackage.arguments` only
parses option lists given to it.

## Tests

```
pip install .[test]
pytest
```