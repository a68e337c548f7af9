# protocol.py -- Shared parts of the git protocols
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

"""Generic functions for talking the git smart server protocol."""

__all__ = [
    "FLUSH_PKT",
    "Protocol",
    "extract_capabilities",
    "pkt_line",
]

from collections.abc import Callable, Iterator

from .errors import GitProtocolError, HangupException

FLUSH_PKT = b"0000"

# Largest pkt-line git will send, length prefix included
MAX_PKT_LEN = 65520


def pkt_line(data: bytes | None) -> bytes:
    """Wrap data in a pkt-line.

    Args:
      data: The data to wrap, as bytes, or None for a flush-pkt.
    Returns: The data prefixed with its length in pkt-line format; if data
        was None, returns the flush-pkt ('0000').
    """
    if data is None:
        return FLUSH_PKT
    if len(data) + 4 > MAX_PKT_LEN:
        raise ValueError(f"pkt-line payload of {len(data)} bytes is too long")
    return f"{len(data) + 4:04x}".encode("ascii") + data


class Protocol:
    """Reads pkt-lines from a byte stream."""

    def __init__(self, read: Callable[[int], bytes]) -> None:
        self.read = read

    def _read_exact(self, size: int) -> bytes:
        data = self.read(size)
        if len(data) != size:
            raise GitProtocolError(
                f"Length of pkt read {len(data)} does not match length "
                f"prefix {size}"
            )
        return data

    def read_pkt_line(self) -> bytes | None:
        """Reads a pkt-line from the remote git process.

        Returns: The next string from the stream, without the length
            prefix, or None for a flush-pkt.
        Raises:
          HangupException: if the stream ends before a length prefix
          GitProtocolError: if the length prefix is invalid or the line is
            cut short
        """
        sizestr = self.read(4)
        if not sizestr:
            raise HangupException()
        if len(sizestr) != 4:
            raise GitProtocolError(f"truncated pkt-line length {sizestr!r}")
        try:
            size = int(sizestr, 16)
        except ValueError as exc:
            raise GitProtocolError(f"Invalid pkt-line length {sizestr!r}") from exc
        if size == 0:
            return None
        if size < 4:
            raise GitProtocolError(f"Invalid pkt-line length {size}")
        return self._read_exact(size - 4)

    def read_pkt_seq(self) -> Iterator[bytes]:
        """Read a sequence of pkt-lines up to the next flush-pkt."""
        pkt = self.read_pkt_line()
        while pkt:
            yield pkt
            pkt = self.read_pkt_line()


def extract_capabilities(text: bytes) -> tuple[bytes, list[bytes]]:
    """Extract a capabilities list from a string, if present.

    Args:
      text: String to extract from
    Returns: Tuple with text with capabilities removed and list of capabilities
    """
    if b"\0" not in text:
        return text, []
    text, capabilities = text.rstrip().split(b"\0", 1)
    return (text, capabilities.strip().split(b" "))
