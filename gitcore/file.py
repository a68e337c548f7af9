# file.py -- Lock-file writes
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

"""Lock-file writes for objects, refs and configuration.

A file is never written in place. New contents go to ``<name>.lock``, which
is created exclusively, and replace ``<name>`` with a single rename once they
are complete. A second writer finds the lock file and fails with
:class:`FileLocked`; readers only ever see the old or the new contents.
"""

__all__ = [
    "LOCK_SUFFIX",
    "FileLocked",
    "GitFile",
    "LockedFile",
    "ensure_dir_exists",
    "write_locked",
]

import os
import warnings
from types import TracebackType
from typing import IO

LOCK_SUFFIX = ".lock"


def ensure_dir_exists(dirname: str | os.PathLike[str]) -> None:
    """Create dirname and any missing parents."""
    os.makedirs(dirname, exist_ok=True)


class FileLocked(Exception):
    """Another writer holds the lock file."""

    def __init__(self, filename: str, lockfilename: str) -> None:
        self.filename = filename
        self.lockfilename = lockfilename
        super().__init__(f"{filename} is locked ({lockfilename} exists)")


def _discard(f: IO[bytes], lockfilename: str) -> None:
    f.close()
    try:
        os.remove(lockfilename)
    except FileNotFoundError:
        pass


class LockedFile:
    """Write handle on ``<target>.lock``.

    :meth:`commit` renames the lock file over the target and
    :meth:`rollback` deletes it. Used as a context manager, the lock is
    committed when the block succeeds and rolled back when it raises.
    """

    def __init__(
        self,
        target: str | os.PathLike[str],
        mask: int = 0o644,
        fsync: bool = True,
    ) -> None:
        """Take the lock on target.

        Args:
          target: File to replace
          mask: Permission bits for the new file
          fsync: Whether to fsync the data before the rename
        Raises:
          FileLocked: if the lock file already exists
        """
        self.target = os.fspath(target)
        self.lockfilename = self.target + LOCK_SUFFIX
        self._fsync = fsync
        flags = os.O_WRONLY | os.O_CREAT | os.O_EXCL | getattr(os, "O_BINARY", 0)
        try:
            fd = os.open(self.lockfilename, flags, mask)
        except FileExistsError:
            raise FileLocked(self.target, self.lockfilename) from None
        self._file: IO[bytes] | None = os.fdopen(fd, "wb")

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.target!r})"

    @property
    def closed(self) -> bool:
        """Whether the lock has been committed or rolled back."""
        return self._file is None

    def write(self, data: bytes) -> int:
        if self._file is None:
            raise ValueError(f"lock on {self.target} has been released")
        return self._file.write(data)

    def _release(self) -> IO[bytes] | None:
        f, self._file = self._file, None
        return f

    def rollback(self) -> None:
        """Drop the lock file and leave the target as it was."""
        f = self._release()
        if f is not None:
            _discard(f, self.lockfilename)

    def commit(self) -> None:
        """Replace the target with the written data.

        Raises:
          OSError: if the data cannot be flushed or the rename fails. The
            lock file is gone when this propagates.
        """
        f = self._release()
        if f is None:
            return
        try:
            f.flush()
            if self._fsync:
                os.fsync(f.fileno())
            f.close()
            os.replace(self.lockfilename, self.target)
        except BaseException:
            _discard(f, self.lockfilename)
            raise

    close = commit

    def __del__(self) -> None:
        if getattr(self, "_file", None) is not None:
            warnings.warn(f"unreleased {self!r}", ResourceWarning, stacklevel=2)
            self.rollback()

    def __enter__(self) -> "LockedFile":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if exc_type is None:
            self.commit()
        else:
            self.rollback()


def GitFile(
    filename: str | os.PathLike[str],
    mode: str = "rb",
    mask: int = 0o644,
    fsync: bool = True,
) -> "IO[bytes] | LockedFile":
    """Open a git file for reading (``"rb"``) or a locked write (``"wb"``).

    Appending and updating in place cannot go through a lock file, so every
    other mode is refused.
    """
    if mode == "rb":
        return open(filename, "rb")
    if mode == "wb":
        return LockedFile(filename, mask, fsync)
    raise OSError(f"mode {mode!r} is not supported for git files")


def write_locked(
    filename: str | os.PathLike[str],
    data: bytes,
    mask: int = 0o644,
    fsync: bool = True,
) -> None:
    """Replace filename with data through its lock file."""
    with LockedFile(filename, mask, fsync) as f:
        f.write(data)
