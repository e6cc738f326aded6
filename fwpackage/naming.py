"""Choose archive entry names that do not collide inside a firmware package."""

from __future__ import annotations

import itertools
import random
import re
import string
from collections.abc import Sequence

_UINT_MAX = 0xFFFFFFFF
_RENAME_MARKER = re.compile(r"-(?=[0-9])")


def base_name(path: str) -> str:
    """Return the final component of ``path``.

    A forward slash is preferred as the separator; a backslash is only
    considered when the path holds no forward slash at all.
    """
    last_slash = path.rfind("/")
    if last_slash < 0:
        last_slash = path.rfind("\\")
    return path[last_slash + 1:]


def _split_extension(filename: str) -> tuple[str, str]:
    last_period = filename.rfind(".")
    if last_period < 0:
        return filename, ""
    return filename[:last_period], filename[last_period:]


def _strip_extension(filename: str) -> str:
    return _split_extension(filename)[0]


def _parse_uint(text: str) -> int | None:
    text = text.strip()
    if not text or not all(c in string.digits for c in text):
        return None
    value = int(text)
    return value if value <= _UINT_MAX else None


def _last_rename_marker(name: str) -> int:
    """Index of the last ``-<digits>`` run in ``name``, or -1."""
    last = -1
    for match in _RENAME_MARKER.finditer(name):
        last = match.start()
    return last


def _rename_offset(
    names: Sequence[str], prefix: str, min_length: int, short_name: str
) -> int | None:
    """Largest rename index already used by names derived from ``short_name``.

    ``None`` means a candidate carried a trailing number that could not be
    parsed, so numeric renaming cannot be trusted.
    """
    offset = 0
    for other in names:
        if len(other) <= min_length or other[: len(prefix)] != prefix:
            continue
        short_other = _strip_extension(other)
        if _last_rename_marker(short_other) != len(short_name):
            continue
        trailing = _parse_uint(short_other[len(short_name) + 1:])
        if trailing is None:
            return None
        offset = max(offset, trailing)
    return offset


def clashless_filename(paths: Sequence[str], index: int) -> str:
    """Archive name for ``paths[index]`` that avoids clashing with earlier entries.

    Entries sharing a base name but coming from different paths are renamed
    ``name-N.ext``; when that scheme cannot be applied safely, a ``+`` based
    suffix is searched for instead.
    """
    path = paths[index]
    filename = base_name(path)
    names = [base_name(p) for p in paths]

    rename_index = sum(
        1
        for other_path, other_name in zip(paths[:index], names[:index])
        if other_name == filename and other_path != path
    )
    if rename_index == 0:
        return filename

    short_name, file_type = _split_extension(filename)
    offset = _rename_offset(names, short_name, len(filename) + 1, short_name)

    if offset is not None and rename_index <= _UINT_MAX - offset:
        return f"{short_name}-{offset + rename_index}{file_type}"

    taken = set(names)
    rename_prefix = ""
    while True:
        rename_prefix += "+"
        for number in range(_UINT_MAX):
            candidate = f"{short_name}{rename_prefix}{number}{file_type}"
            if candidate not in taken:
                return candidate


def clashless_name_for(paths: Sequence[str], filename: str) -> str:
    """Name for an extra entry ``filename`` that avoids every name in ``paths``.

    Clashes are resolved as ``name-N.ext``; when that cannot be done safely a
    random suffix of eight capital letters is used.
    """
    names = [base_name(p) for p in paths]

    rename_index = sum(1 for name in names if name == filename)
    if rename_index == 0:
        return filename

    short_name, file_type = _split_extension(filename)
    offset = _rename_offset(names, filename, len(filename) + 1, short_name)

    if offset is not None and rename_index <= _UINT_MAX - offset:
        return f"{short_name}-{offset + rename_index}{file_type}"

    taken = set(names)
    for _ in itertools.count():
        suffix = "".join(random.choice(string.ascii_uppercase) for _ in range(8))
        candidate = f"{short_name}-{suffix}"
        if candidate not in taken:
            return candidate
    raise AssertionError("unreachable")