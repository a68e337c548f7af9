# pack.py -- For dealing with packed git objects.
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

"""Classes for dealing with packed git objects.

A pack is a sequence of compressed objects, as sent by a server in answer to
a fetch. The layout is::

    "PACK" | version (u32 BE) | count (u32 BE) | entry * count | SHA-1 trailer

Each entry starts with a header byte whose bits 4-6 hold the type and whose
low four bits start a size varint. Whole objects (commit, tree, blob) follow
as a zlib stream; REF_DELTA entries carry the 20 byte id of their base before
a zlib compressed delta. Entries are resolved in stream order against a
:class:`PackResolver` that only lives for a single :func:`decode_packfile`
call.
"""

__all__ = [
    "DELTA_TYPES",
    "OFS_DELTA",
    "PACK_SIGNATURE",
    "PACK_VERSION",
    "REF_DELTA",
    "PackEntry",
    "PackRecord",
    "PackResolver",
    "Packfile",
    "UnpackedEntry",
    "apply_delta",
    "decode_packfile",
    "pack_object_header",
    "read_pack_header",
    "unpack_entry",
    "write_pack_objects",
]

from collections.abc import Iterable, Iterator
from hashlib import sha1
from struct import pack, unpack_from
from typing import NamedTuple

from .compression import DEFAULT_COMPRESSION_LEVEL, compress, decompress
from .errors import (
    ApplyDeltaError,
    ChecksumMismatch,
    MissingDeltaBase,
    ObjectFormatException,
    UnsupportedObjectType,
)
from .log_utils import getLogger
from .objects import hash_object, hex_to_sha, sha_to_hex, type_name_for
from .varint import decode_size_varint, encode_size_varint

logger = getLogger(__name__)

PACK_SIGNATURE = b"PACK"
PACK_VERSION = 2

OFS_DELTA = 6
REF_DELTA = 7

DELTA_TYPES = (OFS_DELTA, REF_DELTA)

_TAG_TYPE = 4

# Whole object types that can be decoded
_FULL_TYPES = (1, 2, 3)

_HEADER_LENGTH = 12
_TRAILER_LENGTH = 20


def read_pack_header(data: bytes) -> tuple[int, int]:
    """Read the header of a pack file.

    Args:
      data: Pack data, starting with the signature
    Returns: Tuple of (pack version, number of objects)
    Raises:
      ObjectFormatException: if the header is short, the signature is
        wrong or the version is not 2
    """
    if len(data) < _HEADER_LENGTH:
        raise ObjectFormatException("file too short to contain pack")
    if data[:4] != PACK_SIGNATURE:
        raise ObjectFormatException(f"Invalid pack header {bytes(data[:4])!r}")
    (version,) = unpack_from(">L", data, 4)
    if version != PACK_VERSION:
        raise ObjectFormatException(f"Version was {version}")
    (num_objects,) = unpack_from(">L", data, 8)
    return (version, num_objects)


class UnpackedEntry:
    """An entry as read from the pack, before delta resolution.

    Attributes:
      offset: Position of the entry header in the pack
      pack_type_num: Type number from the entry header
      decomp_len: Declared decompressed size
      delta_base: Hex id of the base for REF_DELTA entries, otherwise None
      data: Decompressed contents (the delta instructions for deltas)
    """

    __slots__ = ["data", "decomp_len", "delta_base", "offset", "pack_type_num"]

    def __init__(
        self,
        offset: int,
        pack_type_num: int,
        decomp_len: int,
        data: bytes,
        delta_base: str | None = None,
    ) -> None:
        self.offset = offset
        self.pack_type_num = pack_type_num
        self.decomp_len = decomp_len
        self.data = data
        self.delta_base = delta_base

    def is_delta(self) -> bool:
        return self.pack_type_num in DELTA_TYPES

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(offset={self.offset}, "
            f"pack_type_num={self.pack_type_num}, decomp_len={self.decomp_len}, "
            f"delta_base={self.delta_base!r})"
        )


def unpack_entry(data: bytes, offset: int) -> tuple[UnpackedEntry, int]:
    """Unpack a single pack entry.

    Args:
      data: Pack data
      offset: Position of the entry header
    Returns: Tuple of (unpacked entry, offset of the next entry)
    Raises:
      UnsupportedObjectType: for tag and OFS_DELTA entries
      ObjectFormatException: for invalid types, truncated data or a size
        that does not match the decompressed contents
    """
    if offset >= len(data):
        raise ObjectFormatException(f"pack entry at offset {offset} is missing")
    type_num = (data[offset] >> 4) & 0x07
    consumed, size = decode_size_varint(data, offset, 4)
    pos = offset + consumed
    delta_base = None
    if type_num == OFS_DELTA:
        raise UnsupportedObjectType("ofs-delta", reason=f"pack entry at offset {offset}")
    elif type_num == _TAG_TYPE:
        raise UnsupportedObjectType("tag", reason=f"pack entry at offset {offset}")
    elif type_num == REF_DELTA:
        if pos + 20 > len(data):
            raise ObjectFormatException(
                f"delta base id of entry at offset {offset} runs past end of data"
            )
        delta_base = sha_to_hex(bytes(data[pos : pos + 20]))
        pos += 20
    elif type_num not in _FULL_TYPES:
        raise ObjectFormatException(
            f"invalid pack entry type {type_num} at offset {offset}"
        )
    used, decompressed = decompress(data, pos)
    if len(decompressed) != size:
        raise ObjectFormatException(
            f"pack entry at offset {offset} declares {size} bytes "
            f"but decompresses to {len(decompressed)}"
        )
    entry = UnpackedEntry(offset, type_num, size, decompressed, delta_base)
    return entry, pos + used


def apply_delta(src_buf: bytes, delta: bytes) -> bytes:
    """Based on the similar function in git's patch-delta.c.

    Args:
      src_buf: Source buffer
      delta: Delta instructions, starting with the source and target sizes
    Returns: The reconstructed target
    Raises:
      ApplyDeltaError: if the delta does not fit the source or is malformed
    """
    try:
        consumed, src_size = decode_size_varint(delta, 0, 7)
        index = consumed
        consumed, dest_size = decode_size_varint(delta, index, 7)
        index += consumed
    except ObjectFormatException as e:
        raise ApplyDeltaError(f"truncated delta header: {e}") from e
    if src_size != len(src_buf):
        raise ApplyDeltaError(
            f"Unexpected source buffer size: {src_size} vs {len(src_buf)}"
        )
    delta_length = len(delta)
    out = []
    out_length = 0
    while index < delta_length:
        cmd = delta[index]
        index += 1
        if cmd & 0x80:
            cp_off = 0
            for i in range(4):
                if cmd & (1 << i):
                    if index >= delta_length:
                        raise ApplyDeltaError("copy offset runs past end of delta")
                    cp_off |= delta[index] << (i * 8)
                    index += 1
            cp_size = 0
            for i in range(3):
                if cmd & (1 << (4 + i)):
                    if index >= delta_length:
                        raise ApplyDeltaError("copy size runs past end of delta")
                    cp_size |= delta[index] << (i * 8)
                    index += 1
            if cp_size == 0:
                cp_size = 0x10000
            if cp_off + cp_size > src_size:
                raise ApplyDeltaError(
                    f"copy of {cp_size} bytes at {cp_off} exceeds source size {src_size}"
                )
            chunk = src_buf[cp_off : cp_off + cp_size]
        elif cmd != 0:
            if index + cmd > delta_length:
                raise ApplyDeltaError("insert runs past end of delta")
            chunk = delta[index : index + cmd]
            index += cmd
        else:
            raise ApplyDeltaError("Invalid opcode 0")
        out_length += len(chunk)
        if out_length > dest_size:
            raise ApplyDeltaError(f"delta output exceeds target size {dest_size}")
        out.append(chunk)

    if dest_size != out_length:
        raise ApplyDeltaError(
            f"dest size incorrect: expected {dest_size}, got {out_length}"
        )
    return b"".join(out)


class PackEntry(NamedTuple):
    """A fully resolved pack entry."""

    type_num: int
    size: int
    sha: str
    data: bytes

    @property
    def type_name(self) -> str:
        return type_name_for(self.type_num)


class PackResolver:
    """Resolution context for the entries of a single pack.

    Maps ids to the entries resolved so far. A REF_DELTA entry can only
    refer to an entry that came before it.
    """

    def __init__(self) -> None:
        self._by_sha: dict[str, PackEntry] = {}
        self._order: list[PackEntry] = []

    def __contains__(self, sha: object) -> bool:
        return sha in self._by_sha

    def __len__(self) -> int:
        return len(self._order)

    def __iter__(self) -> Iterator[PackEntry]:
        return iter(self._order)

    def get(self, sha: str) -> PackEntry | None:
        return self._by_sha.get(sha)

    def resolve(self, unpacked: UnpackedEntry) -> PackEntry:
        """Resolve an unpacked entry and remember it.

        Raises:
          MissingDeltaBase: if a delta's base has not been resolved
          ApplyDeltaError: if the delta does not apply to its base
        """
        if unpacked.pack_type_num == REF_DELTA:
            assert unpacked.delta_base is not None
            base = self._by_sha.get(unpacked.delta_base)
            if base is None:
                raise MissingDeltaBase(unpacked.delta_base)
            data = apply_delta(base.data, unpacked.data)
            type_num = base.type_num
            logger.debug(
                "resolved delta at offset %d against %s", unpacked.offset, base.sha
            )
        else:
            data = unpacked.data
            type_num = unpacked.pack_type_num
        entry = PackEntry(type_num, len(data), hash_object(type_num, data), data)
        if entry.sha not in self._by_sha:
            self._by_sha[entry.sha] = entry
            self._order.append(entry)
        return entry

    def entries(self) -> list[PackEntry]:
        """Return the distinct resolved entries, in stream order."""
        return list(self._order)


class Packfile(NamedTuple):
    """A decoded pack."""

    version: int
    checksum: str
    entries: list[PackEntry]


def decode_packfile(data: bytes, verify_checksum: bool = True) -> Packfile:
    """Decode a complete pack held in memory.

    Args:
      data: Pack data, including the trailer
      verify_checksum: Whether to check the trailer against the contents
    Returns: Packfile with the resolved entries in stream order
    Raises:
      ObjectFormatException: if the pack is malformed or its entry count
        does not match the data, counting duplicate objects once
      ChecksumMismatch: if the trailer does not match
      UnsupportedObjectType: for tag and OFS_DELTA entries
      MissingDeltaBase: for a delta whose base comes later or not at all
      ApplyDeltaError: for a delta that does not apply
    """
    version, num_objects = read_pack_header(data)
    if len(data) < _HEADER_LENGTH + _TRAILER_LENGTH:
        raise ObjectFormatException("pack is too short to hold its trailer")
    end = len(data) - _TRAILER_LENGTH
    body = memoryview(data)[:end]
    logger.debug("decoding pack version %d with %d objects", version, num_objects)
    resolver = PackResolver()
    offset = _HEADER_LENGTH
    for i in range(num_objects):
        if offset >= end:
            raise ObjectFormatException(
                f"pack declares {num_objects} objects but ends after {i}"
            )
        unpacked, offset = unpack_entry(body, offset)
        entry = resolver.resolve(unpacked)
        logger.debug(
            "pack entry %d: %s %s (%d bytes)", i, entry.type_name, entry.sha, entry.size
        )
    if offset != end:
        raise ObjectFormatException(
            f"{end - offset} bytes of unexpected data after the last pack entry"
        )
    if len(resolver) != num_objects:
        raise ObjectFormatException(
            f"pack declares {num_objects} objects but holds {len(resolver)} "
            "distinct ones"
        )
    trailer = bytes(data[end:])
    if verify_checksum:
        actual = sha1(body).digest()
        if actual != trailer:
            raise ChecksumMismatch(
                sha_to_hex(trailer), sha_to_hex(actual), "pack trailer"
            )
    return Packfile(version, sha_to_hex(trailer), resolver.entries())


class PackRecord(NamedTuple):
    """An entry to be written by :func:`write_pack_objects`.

    For REF_DELTA records ``data`` holds the delta instructions and
    ``delta_base`` the hex id of the base.
    """

    type_num: int
    data: bytes
    delta_base: str | None = None


def pack_object_header(type_num: int, delta_base: str | None, size: int) -> bytes:
    """Create a pack object header for the given object info.

    Args:
      type_num: Numeric type of the object.
      delta_base: Hex id of the delta base, or None for whole objects.
      size: Uncompressed object size.
    Returns: A header for a packed object.
    """
    header = encode_size_varint(size, 4, type_num << 4)
    if type_num == REF_DELTA:
        if delta_base is None:
            raise ValueError("REF_DELTA entries need a delta base")
        header += hex_to_sha(delta_base)
    elif type_num not in _FULL_TYPES:
        raise UnsupportedObjectType(
            str(type_num), reason="only whole objects and REF_DELTA can be written"
        )
    return header


def write_pack_objects(
    records: Iterable[PackRecord | tuple[int, bytes]],
    compression_level: int = DEFAULT_COMPRESSION_LEVEL,
) -> bytes:
    """Write a complete pack, trailer included.

    Args:
      records: PackRecord tuples, or (type_num, data) pairs for whole objects
      compression_level: zlib level for the entries
    Returns: Pack data
    """
    records = [PackRecord(*r) for r in records]
    chunks = [PACK_SIGNATURE, pack(">L", PACK_VERSION), pack(">L", len(records))]
    for record in records:
        chunks.append(
            pack_object_header(record.type_num, record.delta_base, len(record.data))
        )
        chunks.append(compress(record.data, compression_level))
    contents = b"".join(chunks)
    return contents + sha1(contents).digest()
