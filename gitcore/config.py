# config.py - Reading and writing Git config files
# Copyright (C) 2026 The gitcore authors
#
# SPDX-License-Identifier: Apache-2.0 OR GPL-2.0-or-later
# gitcore is dual-licensed under the Apache License, Version 2.0 and the GNU
# General Public License as published by the Free Software Foundation; version 2.0
# or (at your option) any later version. You can redistribute it and/or
# modify it under the terms of either of these two licenses.
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# You should have received a copy of the licenses; if not, see
# <http://www.gnu.org/licenses/> for a copy of the GNU General Public License
# and <http://www.apache.org/licenses/LICENSE-2.0> for a copy of the Apache
# License, Version 2.0.
#

"""Reading and writing Git configuration files.

Handles the subset of the format a repository needs: sections with optional
quoted subsections, ``name = value`` settings, comments and quoted values.
Section and variable names are case-insensitive; their spelling is kept
when the file is written back.

Values are handled as text. Includes, multivars and line continuations are
not supported.
"""

__all__ = [
    "ConfigFile",
    "compression_level",
]

import os
from collections.abc import Iterator
from typing import IO, overload

from .errors import ConfigFormatError
from .file import GitFile, LockedFile

Section = tuple[str, ...]

_ESCAPE_TABLE = {
    "\\": "\\",
    '"': '"',
    "n": "\n",
    "t": "\t",
    "b": "\b",
}
_COMMENT_CHARS = "#;"
_WHITESPACE_CHARS = " \t"


def _lower_section(section: Section) -> Section:
    # Subsection names are case sensitive
    return (section[0].lower(), *section[1:])


def _check_variable_name(name: str) -> bool:
    return bool(name) and all(c.isalnum() or c == "-" for c in name)


def _check_section_name(name: str) -> bool:
    return bool(name) and all(c.isalnum() or c in "-." for c in name)


def _parse_string(value: str) -> str:
    value = value.strip()
    ret = []
    whitespace = []
    in_quotes = False
    i = 0
    while i < len(value):
        c = value[i]
        if c == "\\":
            i += 1
            if i >= len(value):
                raise ValueError("escape character at end of line")
            try:
                v = _ESCAPE_TABLE[value[i]]
            except KeyError:
                raise ValueError(f"invalid escape sequence \\{value[i]}") from None
            ret.extend(whitespace)
            whitespace = []
            ret.append(v)
        elif c == '"':
            in_quotes = not in_quotes
        elif c in _COMMENT_CHARS and not in_quotes:
            # the rest of the line is a comment
            break
        elif c in _WHITESPACE_CHARS and not in_quotes:
            whitespace.append(c)
        else:
            ret.extend(whitespace)
            whitespace = []
            ret.append(c)
        i += 1

    if in_quotes:
        raise ValueError("missing end quote")

    return "".join(ret)


def _escape_value(value: str) -> str:
    """Escape a value."""
    value = value.replace("\\", "\\\\")
    value = value.replace("\n", "\\n")
    value = value.replace("\t", "\\t")
    value = value.replace('"', '\\"')
    return value


def _format_string(value: str) -> str:
    if value.startswith((" ", "\t")) or value.endswith((" ", "\t")) or any(
        c in value for c in _COMMENT_CHARS
    ):
        return '"' + _escape_value(value) + '"'
    return _escape_value(value)


def _strip_comments(line: str) -> str:
    string_open = False
    for i, character in enumerate(line):
        # Comment characters outside balanced quotes denote comment start
        if character == '"':
            string_open = not string_open
        elif not string_open and character in _COMMENT_CHARS:
            return line[:i]
    return line


def _parse_section_header_line(line: str) -> tuple[Section, str]:
    line = _strip_comments(line).rstrip()
    last = line.find("]")
    if last == -1:
        raise ValueError("expected trailing ]")
    pts = line[1:last].split(" ", 1)
    rest = line[last + 1 :]
    if len(pts) == 2:
        if not (len(pts[1]) >= 2 and pts[1][0] == '"' and pts[1][-1] == '"'):
            raise ValueError(f"Invalid subsection {pts[1]!r}")
        if not _check_section_name(pts[0]):
            raise ValueError(f"invalid section name {pts[0]!r}")
        return (pts[0], pts[1][1:-1].replace('\\"', '"').replace("\\\\", "\\")), rest
    if not _check_section_name(pts[0]):
        raise ValueError(f"invalid section name {pts[0]!r}")
    name, sep, sub = pts[0].partition(".")
    if sep:
        return (name, sub), rest
    return (name,), rest


def _to_section(section: str | Section) -> Section:
    if isinstance(section, str):
        return (section,)
    return tuple(section)


class ConfigFile:
    """A Git configuration file, like .git/config."""

    def __init__(self) -> None:
        # lowered section -> (section as written, {lowered name: (name, value)})
        self._values: dict[Section, tuple[Section, dict[str, tuple[str, str]]]] = {}
        self.path: str | None = None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.path!r})"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, ConfigFile) and self._values == other._values

    @classmethod
    def from_file(cls, f: IO[bytes]) -> "ConfigFile":
        """Read configuration from a file-like object.

        Raises:
          ConfigFormatError: if the file is not valid configuration
        """
        ret = cls()
        section: Section | None = None
        for lineno, raw in enumerate(f.readlines(), 1):
            if lineno == 1 and raw.startswith(b"\xef\xbb\xbf"):
                raw = raw[3:]
            try:
                line = raw.decode("utf-8").lstrip()
                if line[:1] == "[":
                    section, line = _parse_section_header_line(line)
                    ret._section_values(section)
                if _strip_comments(line).strip() == "":
                    continue
                if section is None:
                    raise ValueError(f"setting {line.strip()!r} without section")
                setting, sep, value = line.partition("=")
                if not sep:
                    value = "true"
                setting = setting.strip()
                if not _check_variable_name(setting):
                    raise ValueError(f"invalid variable name {setting!r}")
                ret.set(section, setting, _parse_string(value))
            except (ValueError, UnicodeDecodeError) as e:
                raise ConfigFormatError(f"line {lineno}: {e}") from e
        return ret

    @classmethod
    def from_path(cls, path: str | os.PathLike[str]) -> "ConfigFile":
        """Read configuration from a file on disk."""
        abs_path = os.fspath(path)
        with GitFile(abs_path, "rb") as f:
            ret = cls.from_file(f)
        ret.path = abs_path
        return ret

    def _section_values(self, section: Section) -> dict[str, tuple[str, str]]:
        key = _lower_section(section)
        try:
            return self._values[key][1]
        except KeyError:
            values: dict[str, tuple[str, str]] = {}
            self._values[key] = (section, values)
            return values

    def get(self, section: str | Section, name: str) -> str:
        """Retrieve the contents of a configuration setting.

        Args:
          section: Section name, or tuple with section name and subsection
          name: Variable name
        Returns:
          Contents of the setting
        Raises:
          KeyError: if the value is not set
        """
        section = _to_section(section)
        try:
            return self._values[_lower_section(section)][1][name.lower()][1]
        except KeyError:
            raise KeyError(f"{'.'.join(section)}.{name}") from None

    @overload
    def get_boolean(self, section: str | Section, name: str, default: bool) -> bool: ...

    @overload
    def get_boolean(self, section: str | Section, name: str) -> bool | None: ...

    def get_boolean(
        self, section: str | Section, name: str, default: bool | None = None
    ) -> bool | None:
        """Retrieve a configuration setting as boolean.

        Args:
          section: Section name, or tuple with section name and subsection
          name: Variable name
          default: Default value if setting is not found
        Returns:
          Contents of the setting
        """
        try:
            value = self.get(section, name)
        except KeyError:
            return default
        if value.lower() in ("true", "yes", "on", "1"):
            return True
        elif value.lower() in ("false", "no", "off", "0", ""):
            return False
        raise ValueError(f"not a valid boolean string: {value!r}")

    def set(self, section: str | Section, name: str, value: str | bool | int) -> None:
        """Set a configuration value.

        Args:
          section: Section name, or tuple with section name and subsection
          name: Variable name
          value: value of the setting
        """
        section = _to_section(section)
        if not _check_variable_name(name):
            raise ValueError(f"invalid variable name {name!r}")
        if isinstance(value, bool):
            value = "true" if value else "false"
        values = self._section_values(section)
        values[name.lower()] = (name, str(value))

    def items(self, section: str | Section) -> Iterator[tuple[str, str]]:
        """Iterate over the (name, value) pairs of a section."""
        entry = self._values.get(_lower_section(_to_section(section)))
        if entry is None:
            return
        yield from entry[1].values()

    def sections(self) -> Iterator[Section]:
        """Iterate over the sections, as written."""
        for section, _ in self._values.values():
            yield section

    def has_section(self, section: str | Section) -> bool:
        """Check if a specified section exists."""
        return _lower_section(_to_section(section)) in self._values

    def write_to_path(self, path: str | os.PathLike[str] | None = None) -> None:
        """Write configuration to a file on disk."""
        if path is None:
            if self.path is None:
                raise ValueError("No path specified and no default path available")
            path = self.path
        with GitFile(path, "wb") as f:
            self.write_to_file(f)

    def write_to_file(self, f: IO[bytes] | LockedFile) -> None:
        """Write configuration to a file-like object."""
        for section, values in self._values.values():
            if len(section) == 1:
                header = f"[{section[0]}]\n"
            else:
                subsection = section[1].replace("\\", "\\\\").replace('"', '\\"')
                header = f'[{section[0]} "{subsection}"]\n'
            f.write(header.encode("utf-8"))
            for name, value in values.values():
                f.write(f"\t{name} = {_format_string(value)}\n".encode("utf-8"))


def compression_level(config: ConfigFile, default: int = 1) -> int:
    """Return the zlib level to use for loose objects.

    ``core.looseCompression`` wins over ``core.compression``.

    Raises:
      ValueError: if the configured level is not an integer from -1 to 9
    """
    for name in ("looseCompression", "compression"):
        try:
            value = config.get("core", name)
        except KeyError:
            continue
        try:
            level = int(value)
        except ValueError:
            raise ValueError(f"invalid core.{name} value {value!r}") from None
        if not -1 <= level <= 9:
            raise ValueError(f"core.{name} must be between -1 and 9, not {level}")
        return level
    return default
