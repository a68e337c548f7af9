# utils.py -- Test utilities for gitcore.
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

"""Utility functions common to gitcore tests."""

from gitcore.objects import Commit
from gitcore.varint import encode_size_varint

AUTHOR = "Test Author <test@example.com>"


def delta_header(source_size: int, target_size: int) -> bytes:
    """Encode the source and target sizes that start a delta."""
    return encode_size_varint(source_size) + encode_size_varint(target_size)


def copy_op(offset: int, size: int) -> bytes:
    """Encode a delta copy instruction."""
    cmd = 0x80
    args = bytearray()
    for i in range(4):
        byte = (offset >> (i * 8)) & 0xFF
        if byte:
            cmd |= 1 << i
            args.append(byte)
    for i in range(3):
        byte = (size >> (i * 8)) & 0xFF
        if byte:
            cmd |= 1 << (4 + i)
            args.append(byte)
    return bytes([cmd]) + bytes(args)


def insert_op(data: bytes) -> bytes:
    """Encode a delta insert instruction."""
    assert 0 < len(data) < 0x80
    return bytes([len(data)]) + data


def make_commit(**attrs: object) -> Commit:
    """Make a Commit object with a default set of members.

    Args:
      attrs: dict of attributes to overwrite from the default values.
    Returns: A newly initialized Commit object.
    """
    default_time = 1262304000  # 2010-01-01 00:00:00
    all_attrs = {
        "author": AUTHOR,
        "author_time": default_time,
        "author_timezone": 0,
        "committer": AUTHOR,
        "commit_time": default_time,
        "commit_timezone": 0,
        "message": "Test message.\n",
        "parents": [],
        "tree": "0" * 40,
    }
    all_attrs.update(attrs)
    c = Commit()
    for name, value in all_attrs.items():
        setattr(c, name, value)
    return c
