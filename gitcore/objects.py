# objects.py -- Access to base git objects
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

"""Access to base git objects.

Every object is identified by the SHA-1 of ``"<type> <length>\\0"`` followed
by its raw payload. Object ids are handled as 40 character lowercase hex
strings; the 20 byte binary form only appears inside tree payloads and pack
files.
"""

__all__ = [
    "BLOB_MODE",
    "OBJECT_CLASSES",
    "TREE_MODE",
    "Blob",
    "Commit",
    "ShaFile",
    "Tree",
    "TreeEntry",
    "format_timezone",
    "hash_object",
    "hex_to_filename",
    "hex_to_sha",
    "object_class",
    "object_header",
    "parse_commit",
    "parse_timezone",
    "parse_tree",
    "serialize_tree",
    "sha_to_hex",
    "type_name_for",
    "valid_hexsha",
]

import binascii
import os
import re
from collections.abc import Iterable, Iterator
from hashlib import sha1
from typing import Any, ClassVar, NamedTuple

from .errors import ObjectFormatException, UnsupportedObjectType

# Modes written by this implementation
TREE_MODE = "40000"
BLOB_MODE = "100644"

# Header fields for commits
_TREE_HEADER = "tree"
_PARENT_HEADER = "parent"
_AUTHOR_HEADER = "author"
_COMMITTER_HEADER = "committer"

# Type numbers as used in pack files
_TYPE_NAMES = {1: "commit", 2: "tree", 3: "blob", 4: "tag"}

_HEXSHA_RE = re.compile(r"[0-9a-f]{40}\Z")
_TIMEZONE_RE = re.compile(r"([+-])(\d\d)(\d\d)\Z")


def sha_to_hex(sha: bytes) -> str:
    """Takes a 20 byte binary sha and returns its hex form."""
    if len(sha) != 20:
        raise ValueError(f"Incorrect length of binary sha: {len(sha)}")
    return binascii.hexlify(sha).decode("ascii")


def hex_to_sha(hex: str) -> bytes:
    """Takes a hex sha and returns a binary sha."""
    if not valid_hexsha(hex):
        raise ValueError(f"Invalid hex sha {hex!r}")
    return binascii.unhexlify(hex)


def valid_hexsha(hex: object) -> bool:
    """Check whether a value is a 40 character lowercase hex sha."""
    return isinstance(hex, str) and _HEXSHA_RE.match(hex) is not None


def hex_to_filename(path: str | os.PathLike[str], hex: str) -> str:
    """Takes a hex sha and returns its filename relative to the given path.

    The first two characters name a fan-out directory and the remaining 38
    the file inside it.
    """
    if not valid_hexsha(hex):
        raise ValueError(f"Invalid hex sha {hex!r}")
    return os.path.join(os.fspath(path), hex[:2], hex[2:])


def type_name_for(kind: "str | int | type[ShaFile]") -> str:
    """Normalize an object kind to its lowercase type word."""
    if isinstance(kind, type) and issubclass(kind, ShaFile):
        return kind.type_name
    if isinstance(kind, int):
        try:
            return _TYPE_NAMES[kind]
        except KeyError:
            raise ObjectFormatException(f"Not a known type: {kind}") from None
    if kind in _TYPE_NAMES.values():
        return kind
    raise ObjectFormatException(f"Not a known type: {kind!r}")


def object_header(kind: "str | int | type[ShaFile]", length: int) -> bytes:
    """Return the header used when hashing or storing an object."""
    return f"{type_name_for(kind)} {length}\0".encode("ascii")


def hash_object(kind: "str | int | type[ShaFile]", payload: bytes) -> str:
    """Compute the id of an object.

    Args:
      kind: Type name (``blob``, ``tree``, ``commit``, ``tag``), pack type
        number or object class
      payload: Raw object contents
    Returns: 40 character lowercase hex digest
    """
    h = sha1(object_header(kind, len(payload)))
    h.update(payload)
    return h.hexdigest()


def object_class(kind: str | int) -> "type[ShaFile]":
    """Get the object class corresponding to the given type.

    Args:
      kind: Either a type name string or a numeric type.
    Returns: The ShaFile subclass corresponding to the given type.
    Raises:
      UnsupportedObjectType: for tags, which exist but are not handled
      ObjectFormatException: for anything that is not a git type at all
    """
    try:
        return _TYPE_MAP[kind]
    except KeyError:
        if kind in ("tag", 4):
            raise UnsupportedObjectType("tag") from None
        raise ObjectFormatException(f"Not a known type: {kind!r}") from None


def serializable_property(name: str, docstring: str | None = None) -> property:
    """A property that drops the cached serialization when set."""

    def setter(obj: "ShaFile", value: Any) -> None:  # noqa: ANN401
        setattr(obj, "_" + name, value)
        obj._raw = None

    def getter(obj: "ShaFile") -> Any:  # noqa: ANN401
        return getattr(obj, "_" + name)

    return property(getter, setter, doc=docstring)


class ShaFile:
    """A git SHA file."""

    type_name: ClassVar[str]
    type_num: ClassVar[int]

    _raw: bytes | None

    def __init__(self) -> None:
        """Don't call this directly."""
        self._raw = None

    @staticmethod
    def from_raw_string(kind: str | int, data: bytes) -> "ShaFile":
        """Creates an object of the indicated type from the raw string given.

        Args:
          kind: The type name or numeric type of the object.
          data: The raw uncompressed contents.
        """
        obj = object_class(kind)()
        obj.set_raw_string(data)
        return obj

    def set_raw_string(self, data: bytes) -> None:
        """Replace the contents of this object with parsed ``data``."""
        data = bytes(data)
        self._deserialize(data)
        self._raw = data

    def as_raw_string(self) -> bytes:
        """Return the raw payload, serializing it if necessary."""
        if self._raw is None:
            self._raw = self._serialize()
        return self._raw

    def raw_length(self) -> int:
        """Returns the length of the raw string of this object."""
        return len(self.as_raw_string())

    def as_pretty_string(self) -> str:
        """Return a human readable rendering of the payload."""
        return self.as_raw_string().decode("utf-8", "replace")

    @property
    def id(self) -> str:
        """The hex SHA of this object."""
        return hash_object(self.type_name, self.as_raw_string())

    def _deserialize(self, data: bytes) -> None:
        raise NotImplementedError(self._deserialize)

    def _serialize(self) -> bytes:
        raise NotImplementedError(self._serialize)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.id}>"

    def __eq__(self, other: object) -> bool:
        """Return true if the sha of the two objects match."""
        return isinstance(other, ShaFile) and self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)


class Blob(ShaFile):
    """A Git Blob object."""

    type_name = "blob"
    type_num = 3

    def __init__(self, data: bytes = b"") -> None:
        super().__init__()
        self._data = bytes(data)

    @classmethod
    def from_string(cls, data: bytes) -> "Blob":
        """Create a blob from a string."""
        return cls(data)

    def _deserialize(self, data: bytes) -> None:
        self._data = data

    def _serialize(self) -> bytes:
        return self._data

    data = serializable_property("data", "The contents of the blob.")


class TreeEntry(NamedTuple):
    """Named tuple encapsulating a single tree entry."""

    mode: str
    name: str
    sha: str

    def is_tree(self) -> bool:
        """Whether this entry names a subdirectory."""
        return self.mode == TREE_MODE


def parse_tree(text: bytes) -> list[TreeEntry]:
    """Parse a tree text.

    Entries are returned in the order they appear; no sorting is assumed.

    Args:
      text: Serialized text to parse
    Returns: list of TreeEntry
    Raises:
      ObjectFormatException: if an entry is malformed or truncated
    """
    entries = []
    count = 0
    length = len(text)
    while count < length:
        mode_end = text.find(b" ", count)
        if mode_end == -1:
            raise ObjectFormatException(f"tree entry at {count} has no mode separator")
        mode = text[count:mode_end]
        if not mode or mode.strip(b"01234567"):
            raise ObjectFormatException(f"invalid tree entry mode {mode!r}")
        name_end = text.find(b"\0", mode_end + 1)
        if name_end == -1:
            raise ObjectFormatException(f"tree entry at {count} has no name terminator")
        name = text[mode_end + 1 : name_end]
        if not name:
            raise ObjectFormatException(f"tree entry at {count} has an empty name")
        if b"/" in name:
            raise ObjectFormatException(f"tree entry name {name!r} contains a slash")
        count = name_end + 21
        if count > length:
            raise ObjectFormatException("tree entry sha runs past end of data")
        sha = text[name_end + 1 : count]
        entries.append(
            TreeEntry(
                mode.decode("ascii"),
                name.decode("utf-8", "surrogateescape"),
                sha_to_hex(sha),
            )
        )
    return entries


def _check_entry_name(name: str) -> None:
    if not name or "/" in name or "\0" in name:
        raise ValueError(f"invalid tree entry name {name!r}")


def serialize_tree(entries: Iterable[tuple[str, str, str]]) -> bytes:
    """Serialize the items in a tree to a text.

    Args:
      entries: Iterable over (mode, name, sha) tuples, in output order
    Returns: Serialized tree text
    """
    chunks = []
    for mode, name, hexsha in entries:
        _check_entry_name(name)
        if not mode or not mode.isdigit():
            raise ValueError(f"invalid tree entry mode {mode!r}")
        chunks.append(
            mode.encode("ascii")
            + b" "
            + name.encode("utf-8", "surrogateescape")
            + b"\0"
            + hex_to_sha(hexsha)
        )
    return b"".join(chunks)


class Tree(ShaFile):
    """A Git tree object."""

    type_name = "tree"
    type_num = 2

    def __init__(self, entries: Iterable[tuple[str, str, str]] | None = None) -> None:
        super().__init__()
        self._entries: list[TreeEntry] = []
        for mode, name, sha in entries or ():
            self.add(mode, name, sha)

    def add(self, mode: str, name: str, hexsha: str) -> None:
        """Append an entry.

        Args:
          mode: Mode string, e.g. ``"100644"`` or ``"40000"``
          name: Entry name, a single path segment
          hexsha: Hex id of the child object
        """
        _check_entry_name(name)
        if not valid_hexsha(hexsha):
            raise ValueError(f"Invalid hex sha {hexsha!r}")
        self._entries.append(TreeEntry(mode, name, hexsha))
        self._raw = None

    def entries(self) -> list[TreeEntry]:
        """Return the entries in serialization order."""
        return list(self._entries)

    def __iter__(self) -> Iterator[TreeEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def _deserialize(self, data: bytes) -> None:
        self._entries = parse_tree(data)

    def _serialize(self) -> bytes:
        return serialize_tree(self._entries)

    def as_pretty_string(self) -> str:
        text = []
        for entry in self._entries:
            kind = "tree" if entry.is_tree() else "blob"
            text.append(f"{int(entry.mode, 8):06o} {kind} {entry.sha}\t{entry.name}\n")
        return "".join(text)


def parse_timezone(text: str) -> int:
    """Parse a ``+HHMM``/``-HHMM`` offset into seconds east of UTC."""
    m = _TIMEZONE_RE.match(text)
    if m is None:
        raise ObjectFormatException(f"invalid timezone {text!r}")
    sign, hours, minutes = m.groups()
    offset = int(hours) * 3600 + int(minutes) * 60
    return -offset if sign == "-" else offset


def format_timezone(offset: int) -> str:
    """Format an offset in seconds as ``+HHMM``/``-HHMM``."""
    if offset % 60 != 0:
        raise ValueError("Unable to handle non-minute offset.")
    sign = "-" if offset < 0 else "+"
    offset = abs(offset)
    return f"{sign}{offset // 3600:02d}{(offset // 60) % 60:02d}"


def _parse_identity(field: str, value: str) -> tuple[str, int, int]:
    try:
        identity, timetext, tztext = value.rsplit(" ", 2)
    except ValueError:
        raise ObjectFormatException(f"malformed {field} line {value!r}") from None
    try:
        timestamp = int(timetext)
    except ValueError:
        raise ObjectFormatException(f"malformed {field} time {timetext!r}") from None
    return identity, timestamp, parse_timezone(tztext)


class Commit(ShaFile):
    """A git commit object."""

    type_name = "commit"
    type_num = 1

    def __init__(self) -> None:
        super().__init__()
        self._tree: str | None = None
        self._parents: list[str] = []
        self._author: str | None = None
        self._author_time = 0
        self._author_timezone = 0
        self._committer: str | None = None
        self._commit_time = 0
        self._commit_timezone = 0
        self._extra: list[tuple[str, str]] = []
        self._message = ""

    def _deserialize(self, data: bytes) -> None:
        text = data.decode("utf-8", "surrogateescape")
        header, sep, message = text.partition("\n\n")
        if not sep:
            raise ObjectFormatException("commit has no blank line after its headers")
        lines = header.split("\n")
        if not lines[0].startswith(_TREE_HEADER + " "):
            raise ObjectFormatException("commit does not start with a tree line")
        self._parents = []
        self._extra = []
        self._author = self._committer = None
        for line in lines:
            if line.startswith(" "):
                # continuation of a multi-line header such as gpgsig
                if not self._extra:
                    raise ObjectFormatException(f"unexpected continuation line {line!r}")
                field, value = self._extra[-1]
                self._extra[-1] = (field, value + "\n" + line[1:])
                continue
            field, sep, value = line.partition(" ")
            if not sep:
                raise ObjectFormatException(f"malformed commit header {line!r}")
            if field == _TREE_HEADER:
                if not valid_hexsha(value):
                    raise ObjectFormatException(f"invalid tree id {value!r}")
                self._tree = value
            elif field == _PARENT_HEADER:
                if not valid_hexsha(value):
                    raise ObjectFormatException(f"invalid parent id {value!r}")
                self._parents.append(value)
            elif field == _AUTHOR_HEADER:
                (self._author, self._author_time, self._author_timezone) = (
                    _parse_identity(field, value)
                )
            elif field == _COMMITTER_HEADER:
                (self._committer, self._commit_time, self._commit_timezone) = (
                    _parse_identity(field, value)
                )
            else:
                self._extra.append((field, value))
        if self._author is None or self._committer is None:
            raise ObjectFormatException("commit lacks author or committer")
        self._message = message

    def _serialize(self) -> bytes:
        if self._tree is None or self._author is None or self._committer is None:
            raise ObjectFormatException("commit needs a tree, author and committer")
        chunks = [f"{_TREE_HEADER} {self._tree}\n"]
        for p in self._parents:
            chunks.append(f"{_PARENT_HEADER} {p}\n")
        chunks.append(
            f"{_AUTHOR_HEADER} {self._author} {self._author_time} "
            f"{format_timezone(self._author_timezone)}\n"
        )
        chunks.append(
            f"{_COMMITTER_HEADER} {self._committer} {self._commit_time} "
            f"{format_timezone(self._commit_timezone)}\n"
        )
        for field, value in self._extra:
            chunks.append(f"{field} {value.replace(chr(10), chr(10) + ' ')}\n")
        chunks.append("\n")  # There must be a new line after the headers
        chunks.append(self._message)
        return "".join(chunks).encode("utf-8", "surrogateescape")

    def _get_parents(self) -> list[str]:
        """Return a list of parents of this commit."""
        return list(self._parents)

    def _set_parents(self, value: list[str]) -> None:
        """Set a list of parents of this commit."""
        self._parents = list(value)
        self._raw = None

    parents = property(_get_parents, _set_parents)

    @property
    def extra(self) -> list[tuple[str, str]]:
        """Header lines this implementation does not interpret."""
        return list(self._extra)

    tree = serializable_property("tree", "Tree that is the state of this commit")
    author = serializable_property("author", "The name of the author of the commit")
    committer = serializable_property(
        "committer", "The name of the committer of the commit"
    )
    message = serializable_property(
        "message", "The commit message, including its trailing newline"
    )
    commit_time = serializable_property(
        "commit_time", "The timestamp of the commit, in seconds since the epoch."
    )
    commit_timezone = serializable_property(
        "commit_timezone", "The zone the commit time is in, in seconds east of UTC"
    )
    author_time = serializable_property(
        "author_time", "The timestamp the commit was written, in seconds since the epoch."
    )
    author_timezone = serializable_property(
        "author_timezone", "The zone the author time is in, in seconds east of UTC"
    )


def parse_commit(data: bytes) -> Commit:
    """Parse a raw commit payload.

    Raises:
      ObjectFormatException: if the payload is not a valid commit
    """
    commit = Commit()
    commit.set_raw_string(data)
    return commit


OBJECT_CLASSES: tuple[type[ShaFile], ...] = (
    Commit,
    Tree,
    Blob,
)

_TYPE_MAP: dict[str | int, type[ShaFile]] = {}

for cls in OBJECT_CLASSES:
    _TYPE_MAP[cls.type_name] = cls
    _TYPE_MAP[cls.type_num] = cls
