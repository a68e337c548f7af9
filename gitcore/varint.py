# varint.py -- Variable-width size encoding used in pack files
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

"""Variable-width size encoding/decoding.

Pack files store sizes least-significant chunk first. The first byte holds
``initial_bits`` bits of the value below a continuation flag in bit 7; every
following byte holds 7 more bits. Entry headers use 4 initial bits (the
three bits above them carry the object type), delta headers use 7.
"""

__all__ = [
    "decode_size_varint",
    "encode_size_varint",
]

from .errors import ObjectFormatException


def encode_size_varint(
    value: int, initial_bits: int = 7, first_byte_flags: int = 0
) -> bytes:
    """Encode a size.

    Args:
      value: Non-negative integer to encode
      initial_bits: Number of value bits carried by the first byte (1-7)
      first_byte_flags: Extra bits to OR into the first byte, placed above
        the value bits (e.g. the type bits of an entry header)
    Returns: Encoded bytes
    """
    if value < 0:
        raise ValueError(f"negative size {value}")
    if not 1 <= initial_bits <= 7:
        raise ValueError(f"invalid initial_bits {initial_bits}")
    mask = (1 << initial_bits) - 1
    byte = (value & mask) | first_byte_flags
    value >>= initial_bits
    ret = bytearray()
    while value:
        ret.append(byte | 0x80)
        byte = value & 0x7F
        value >>= 7
    ret.append(byte)
    return bytes(ret)


def decode_size_varint(
    buffer: bytes, offset: int, initial_bits: int
) -> tuple[int, int]:
    """Decode a size starting at ``offset``.

    Args:
      buffer: Bytes to decode from
      offset: Position of the first byte
      initial_bits: Number of value bits carried by the first byte
    Returns: Tuple of (bytes consumed, value)
    Raises:
      ObjectFormatException: if the buffer ends before the last byte
    """
    pos = offset
    if pos >= len(buffer):
        raise ObjectFormatException(f"varint at offset {offset} runs past end of data")
    byte = buffer[pos]
    pos += 1
    value = byte & ((1 << initial_bits) - 1)
    shift = initial_bits
    while byte & 0x80:
        if pos >= len(buffer):
            raise ObjectFormatException(
                f"varint at offset {offset} runs past end of data"
            )
        byte = buffer[pos]
        pos += 1
        value |= (byte & 0x7F) << shift
        shift += 7
    return pos - offset, value
