# compression.py -- zlib helpers for loose objects and pack entries
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

"""zlib compression helpers."""

__all__ = [
    "DEFAULT_COMPRESSION_LEVEL",
    "compress",
    "decompress",
]

import zlib

from .errors import ObjectFormatException

# Loose objects are written with a fast level, as git does for core.compression=1
DEFAULT_COMPRESSION_LEVEL = 1

_ZLIB_BUFSIZE = 65536


def compress(data: bytes, level: int = DEFAULT_COMPRESSION_LEVEL) -> bytes:
    """Compress data with zlib framing."""
    compobj = zlib.compressobj(level)
    return compobj.compress(data) + compobj.flush()


def decompress(
    data: bytes, offset: int = 0, buffer_size: int = _ZLIB_BUFSIZE
) -> tuple[int, bytes]:
    """Decompress one zlib stream starting at ``offset``.

    Anything after the logical end of the stream is left alone, which is
    what lets pack entries sit back to back.

    Args:
      data: Buffer holding the compressed stream
      offset: Position where the stream starts
      buffer_size: Number of compressed bytes fed to zlib at a time
    Returns: Tuple of (compressed bytes consumed, decompressed data)
    Raises:
      ObjectFormatException: if the stream is invalid or truncated
    """
    decomp_obj = zlib.decompressobj()
    view = memoryview(data)
    pos = offset
    chunks = []
    while not decomp_obj.eof:
        add = view[pos : pos + buffer_size]
        if not add:
            raise ObjectFormatException(f"EOF before end of zlib stream at offset {offset}")
        try:
            chunks.append(decomp_obj.decompress(add))
        except zlib.error as e:
            raise ObjectFormatException(
                f"invalid zlib data at offset {offset}: {e}"
            ) from e
        pos += len(add)
    consumed = pos - offset - len(decomp_obj.unused_data)
    return consumed, b"".join(chunks)
