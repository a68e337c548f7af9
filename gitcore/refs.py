# refs.py -- For dealing with git refs
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

"""Ref handling.

Refs are loose files below the control directory holding either a hex id
or ``ref: <other ref>``. Packed refs are not supported.
"""

__all__ = [
    "HEADREF",
    "LOCAL_BRANCH_PREFIX",
    "SYMREF",
    "DiskRefsContainer",
    "check_ref_format",
    "parse_symref_value",
]

import os
from collections.abc import Iterator

from .errors import RefFormatError, RefMissing, SymrefLoop
from .file import GitFile, ensure_dir_exists, write_locked
from .log_utils import getLogger
from .objects import valid_hexsha

logger = getLogger(__name__)

HEADREF = "HEAD"
SYMREF = "ref: "
LOCAL_BRANCH_PREFIX = "refs/heads/"

# Maximum number of symbolic refs followed before giving up
MAX_SYMREF_DEPTH = 5

BAD_REF_CHARS = set("\177 ~^:?*[")


def parse_symref_value(contents: str) -> str:
    """Parse a symref value.

    Args:
      contents: Contents to parse
    Returns: Destination
    """
    if contents.startswith(SYMREF):
        return contents[len(SYMREF) :].rstrip("\r\n")
    raise ValueError(contents)


def check_ref_format(refname: str) -> bool:
    """Check if a refname is correctly formatted.

    Implements the rules of git-check-ref-format that apply to loose refs.

    Args:
      refname: The refname to check
    Returns: True if refname is valid, False otherwise
    """
    if "/." in refname or refname.startswith("."):
        return False
    if "/" not in refname:
        return False
    if ".." in refname or "//" in refname:
        return False
    for c in refname:
        if ord(c) < 0o40 or c in BAD_REF_CHARS:
            return False
    if refname[-1] in "/.":
        return False
    if refname.endswith(".lock"):
        return False
    if "@{" in refname or "\\" in refname:
        return False
    return True


class DiskRefsContainer:
    """Refs container that reads refs from disk."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        """Initialize DiskRefsContainer.

        Args:
          path: The control directory (``.git``)
        """
        self.path = os.fspath(path)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.path!r})"

    def _check_refname(self, name: str) -> None:
        """Ensure a refname is valid and lives in refs or is HEAD.

        Raises:
          RefFormatError: if a refname is not HEAD or is otherwise not valid.
        """
        if name == HEADREF:
            return
        if not name.startswith("refs/") or not check_ref_format(name[5:]):
            raise RefFormatError(name)

    def refpath(self, name: str) -> str:
        """Return the disk path of a ref."""
        if os.path.sep != "/":
            name = name.replace("/", os.path.sep)
        return os.path.join(self.path, name)

    def read_ref(self, name: str) -> str | None:
        """Read a reference without following any references.

        Args:
          name: The name of the reference
        Returns: The contents of the ref file without its trailing newline,
            or None if it does not exist.
        """
        try:
            with GitFile(self.refpath(name), "rb") as f:
                contents = f.readline()
        except (FileNotFoundError, NotADirectoryError, IsADirectoryError):
            return None
        return contents.decode("utf-8", "surrogateescape").rstrip("\r\n") or None

    def follow(self, name: str) -> tuple[list[str], str | None]:
        """Follow a reference name.

        Returns: a tuple of (refnames, sha), where refnames are the names of
            references in the chain
        Raises:
          SymrefLoop: if more than five symbolic refs have to be followed
        """
        refnames = [name]
        contents = self.read_ref(name)
        while contents is not None and contents.startswith(SYMREF):
            if len(refnames) > MAX_SYMREF_DEPTH:
                raise SymrefLoop(name, len(refnames) - 1)
            refnames.append(parse_symref_value(contents))
            contents = self.read_ref(refnames[-1])
        return refnames, contents

    def __contains__(self, name: str) -> bool:
        return self.read_ref(name) is not None

    def __getitem__(self, name: str) -> str:
        """Get the SHA1 for a reference name.

        This method follows all symbolic references.

        Raises:
          RefMissing: if the ref, or the ref it points to, does not exist
        """
        refnames, sha = self.follow(name)
        if sha is None:
            raise RefMissing(refnames[-1])
        return sha

    def __iter__(self) -> Iterator[str]:
        """Iterate over the names of all refs below ``refs/``."""
        base = os.path.join(self.path, "refs")
        for root, dirs, files in os.walk(base):
            dirs.sort()
            for filename in sorted(files):
                if filename.endswith(".lock"):
                    continue
                path = os.path.join(root, filename)
                yield "refs/" + os.path.relpath(path, base).replace(os.path.sep, "/")

    def set_ref(self, name: str, sha: str) -> None:
        """Point a ref at an object id.

        Symbolic refs are followed, so setting ``HEAD`` updates the branch
        it points to.

        Raises:
          RefFormatError: if the name is not valid
          ValueError: if sha is not a hex object id
        """
        self._check_refname(name)
        if not valid_hexsha(sha):
            raise ValueError(f"Invalid hex sha {sha!r}")
        realnames, _ = self.follow(name)
        realname = realnames[-1]
        self._check_refname(realname)
        filename = self.refpath(realname)
        ensure_dir_exists(os.path.dirname(filename))
        write_locked(filename, sha.encode("ascii") + b"\n")
        logger.debug("set %s to %s", realname, sha)

    def set_symbolic_ref(self, name: str, other: str) -> None:
        """Make a ref point at another ref.

        Args:
          name: Name of the ref to set
          other: Name of the ref to point at
        """
        self._check_refname(name)
        self._check_refname(other)
        filename = self.refpath(name)
        ensure_dir_exists(os.path.dirname(filename))
        write_locked(filename, (SYMREF + other + "\n").encode("utf-8"))
        logger.debug("set %s to point at %s", name, other)

    def current_branch(self) -> str | None:
        """Return the ref HEAD points to, or None if HEAD is detached."""
        contents = self.read_ref(HEADREF)
        if contents is None or not contents.startswith(SYMREF):
            return None
        return parse_symref_value(contents)
