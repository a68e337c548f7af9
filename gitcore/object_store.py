# object_store.py -- Object store for git objects
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

"""Git object store interfaces and implementation."""

__all__ = [
    "PACK_MODE",
    "DiskObjectStore",
    "parse_loose_object",
]

import os
import zlib
from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING

from .compression import DEFAULT_COMPRESSION_LEVEL, compress
from .errors import (
    ChecksumMismatch,
    ObjectFormatException,
    ObjectMissing,
    UnsupportedObjectType,
)
from .file import GitFile, ensure_dir_exists, write_locked
from .log_utils import getLogger
from .objects import (
    OBJECT_CLASSES,
    ShaFile,
    hash_object,
    hex_to_filename,
    object_header,
    type_name_for,
    valid_hexsha,
)

if TYPE_CHECKING:
    from .pack import PackEntry

logger = getLogger(__name__)

# Loose objects are never modified after being written
PACK_MODE = 0o444

_STORABLE_TYPES = frozenset(cls.type_name for cls in OBJECT_CLASSES)


def parse_loose_object(data: bytes) -> ShaFile:
    """Parse the decompressed contents of a loose object file.

    Args:
      data: ``"<type> <length>\\0"`` followed by the payload
    Returns: Blob, Tree or Commit
    Raises:
      ObjectFormatException: if the header is malformed, the length does not
        match or the type is not known
      UnsupportedObjectType: for tag objects
    """
    header_end = data.find(b"\0")
    if header_end == -1:
        raise ObjectFormatException("object header is not NUL terminated")
    type_name, sep, size_text = data[:header_end].partition(b" ")
    if not sep or not type_name:
        raise ObjectFormatException(f"malformed object header {data[:header_end]!r}")
    if (
        not size_text.isdigit()
        or (len(size_text) > 1 and size_text.startswith(b"0"))
    ):
        raise ObjectFormatException(f"object size {size_text!r} is not canonical")
    payload = data[header_end + 1 :]
    if int(size_text) != len(payload):
        raise ObjectFormatException(
            f"object declares {int(size_text)} bytes but holds {len(payload)}"
        )
    try:
        kind = type_name.decode("ascii")
    except UnicodeDecodeError:
        raise ObjectFormatException(f"invalid object type {type_name!r}") from None
    return ShaFile.from_raw_string(kind, payload)


class DiskObjectStore:
    """Git-style object store that exists on disk.

    Objects live at ``<path>/<first 2 hex chars>/<remaining 38>`` and hold
    the zlib compressed header and payload.
    """

    def __init__(
        self,
        path: str | os.PathLike[str],
        *,
        compression_level: int = DEFAULT_COMPRESSION_LEVEL,
        fsync_object_files: bool = False,
    ) -> None:
        """Open an object store.

        Args:
          path: Path to the objects directory
          compression_level: zlib level for newly written objects
          fsync_object_files: Whether to fsync object files when writing
        """
        self.path = os.fspath(path)
        self.compression_level = compression_level
        self.fsync_object_files = fsync_object_files

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}({self.path!r})>"

    @classmethod
    def init(cls, path: str | os.PathLike[str], **kwargs: object) -> "DiskObjectStore":
        """Create the objects directory and open a store on it."""
        ensure_dir_exists(path)
        return cls(path, **kwargs)  # type: ignore[arg-type]

    def _get_shafile_path(self, sha: str) -> str:
        return hex_to_filename(self.path, sha)

    def contains(self, sha: str) -> bool:
        """Check if a particular object is present by SHA1."""
        return valid_hexsha(sha) and os.path.exists(self._get_shafile_path(sha))

    __contains__ = contains

    def __iter__(self) -> Iterator[str]:
        """Iterate over the ids of all stored objects."""
        try:
            bases = sorted(os.listdir(self.path))
        except FileNotFoundError:
            return
        for base in bases:
            if len(base) != 2:
                continue
            for rest in sorted(os.listdir(os.path.join(self.path, base))):
                sha = base + rest
                if valid_hexsha(sha):
                    yield sha

    def store(
        self,
        kind: str | int | type[ShaFile],
        payload: bytes,
        expected_id: str | None = None,
    ) -> str:
        """Store an object, unless it is already present.

        Args:
          kind: Object type (blob, tree or commit)
          payload: Raw object contents
          expected_id: Id the caller believes the object has; checked
            against the computed one before anything is written
        Returns: The object id, whether or not anything was written
        Raises:
          UnsupportedObjectType: for kinds other than blob, tree and commit
          ChecksumMismatch: if expected_id does not match
        """
        type_name = type_name_for(kind)
        if type_name not in _STORABLE_TYPES:
            raise UnsupportedObjectType(type_name, reason="cannot be stored")
        payload = bytes(payload)
        sha = hash_object(type_name, payload)
        if expected_id is not None and expected_id != sha:
            raise ChecksumMismatch(expected_id, sha, f"{type_name} object")
        path = self._get_shafile_path(sha)
        if os.path.exists(path):
            logger.debug("object %s already present, skipping write", sha)
            return sha
        ensure_dir_exists(os.path.dirname(path))
        data = compress(
            object_header(type_name, len(payload)) + payload, self.compression_level
        )
        write_locked(path, data, mask=PACK_MODE, fsync=self.fsync_object_files)
        logger.debug("wrote %s %s (%d bytes)", type_name, sha, len(payload))
        return sha

    def add_object(self, obj: ShaFile) -> str:
        """Add a single object to this object store.

        Args:
          obj: Object to add
        Returns: The id of the object
        """
        return self.store(obj.type_name, obj.as_raw_string())

    def add_objects(self, objects: Iterable[ShaFile]) -> list[str]:
        """Add a set of objects to this object store."""
        return [self.add_object(obj) for obj in objects]

    def load(self, sha: str) -> ShaFile:
        """Load an object by id.

        Raises:
          ObjectMissing: if there is no such object
          ObjectFormatException: if the stored data is not a valid object
        """
        if not valid_hexsha(sha):
            raise ObjectMissing(str(sha))
        path = self._get_shafile_path(sha)
        try:
            with GitFile(path, "rb") as f:
                compressed = f.read()
        except FileNotFoundError:
            raise ObjectMissing(sha) from None
        try:
            data = zlib.decompress(compressed)
        except zlib.error as e:
            raise ObjectFormatException(f"object {sha} is not valid zlib data: {e}") from e
        return parse_loose_object(data)

    __getitem__ = load

    def load_as(self, sha: str, cls: type[ShaFile], error: type[Exception]) -> ShaFile:
        """Load an object and check it has the expected type."""
        obj = self.load(sha)
        if not isinstance(obj, cls):
            raise error(sha)
        return obj

    def persist_entries(self, entries: Iterable["PackEntry"]) -> list[str]:
        """Write resolved pack entries as loose objects.

        Entries are written in order; when one fails, the ones before it stay
        on disk and the exception propagates.

        Args:
          entries: Resolved entries, as returned by decode_packfile
        Returns: ids of the stored objects
        Raises:
          UnsupportedObjectType: for an entry that is not a blob, tree or
            commit
          ChecksumMismatch: if an entry's id does not match its contents
        """
        written = []
        for entry in entries:
            if entry.type_name not in _STORABLE_TYPES:
                raise UnsupportedObjectType(
                    entry.type_name, reason=f"pack entry {entry.sha} cannot be stored"
                )
            written.append(self.store(entry.type_name, entry.data, expected_id=entry.sha))
        logger.debug("persisted %d pack entries", len(written))
        return written
