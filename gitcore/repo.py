# repo.py -- For dealing with git repositories.
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

"""Repository access.

This module contains the :class:`Repo` class, which ties together an object
store, the refs below the control directory and the repository
configuration. All filesystem locations are derived from the repository
path; the process working directory is never consulted or changed.
"""

__all__ = [
    "BASE_DIRECTORIES",
    "CONTROLDIR",
    "DEFAULT_BRANCH",
    "OBJECTDIR",
    "REFSDIR",
    "Repo",
    "get_user_identity",
    "validate_path_element",
]

import os
import time

from .config import ConfigFile, compression_level
from .errors import (
    NotBlobError,
    NotCommitError,
    NotGitRepository,
    NotTreeError,
    ObjectFormatException,
)
from .file import write_locked
from .log_utils import getLogger
from .object_store import DiskObjectStore
from .objects import (
    BLOB_MODE,
    TREE_MODE,
    Blob,
    Commit,
    ShaFile,
    Tree,
    TreeEntry,
    hash_object,
    valid_hexsha,
)
from .pack import Packfile, decode_packfile
from .refs import HEADREF, LOCAL_BRANCH_PREFIX, DiskRefsContainer

logger = getLogger(__name__)

CONTROLDIR = ".git"
OBJECTDIR = "objects"
REFSDIR = "refs"
REFSDIR_HEADS = "heads"
DEFAULT_BRANCH = "master"

BASE_DIRECTORIES = [
    [OBJECTDIR],
    [REFSDIR],
    [REFSDIR, REFSDIR_HEADS],
]

# Entry names that may never be written to disk, compared case-insensitively
INVALID_DOTNAMES = (CONTROLDIR, ".", "..", "")


def validate_path_element(element: str) -> bool:
    """Check whether a tree entry name is safe to check out."""
    return (
        element.lower() not in INVALID_DOTNAMES
        and "/" not in element
        and os.sep not in element
        and (os.altsep is None or os.altsep not in element)
    )


def _get_default_identity() -> tuple[str, str]:
    import socket

    for name in ("LOGNAME", "USER", "LNAME", "USERNAME"):
        username = os.environ.get(name)
        if username:
            break
    else:
        username = "unknown"
    email = os.environ.get("EMAIL")
    if email is None:
        email = f"{username}@{socket.gethostname()}"
    return username, email


def get_user_identity(config: ConfigFile, kind: str | None = "AUTHOR") -> str:
    """Determine the identity to use for new commits.

    If kind is set, this first checks GIT_${KIND}_NAME and GIT_${KIND}_EMAIL.
    If those variables are not set, then it will fall back to reading the
    user.name and user.email settings from the configuration, and finally
    to the login name of the current user.

    Args:
      config: Configuration to read from
      kind: Optional kind to return identity for,
        usually either "AUTHOR" or "COMMITTER".
    Returns:
      A user identity, ``Name <email>``
    """
    user: str | None = None
    email: str | None = None
    if kind:
        user = os.environ.get("GIT_" + kind + "_NAME")
        email = os.environ.get("GIT_" + kind + "_EMAIL")
    if user is None:
        try:
            user = config.get("user", "name")
        except KeyError:
            user = None
    if email is None:
        try:
            email = config.get("user", "email")
        except KeyError:
            email = None
    if user is None or email is None:
        default_user, default_email = _get_default_identity()
        if user is None:
            user = default_user
        if email is None:
            email = default_email
    if email.startswith("<") and email.endswith(">"):
        email = email[1:-1]
    return f"{user} <{email}>"


def _local_timezone(timestamp: int) -> int:
    offset = time.localtime(timestamp).tm_gmtoff
    return offset - offset % 60


def _stat_key(st: os.stat_result) -> tuple[int, int]:
    return (st.st_dev, st.st_ino)


class Repo:
    """A git repository backed by local disk.

    To open an existing repository, call the constructor with the path of
    its working tree. To create a new repository, use the Repo.init class
    method.

    Attributes:
      path: Path to the working tree
      object_store: The loose object store below ``.git/objects``
      refs: Refs below ``.git``
    """

    path: str
    object_store: DiskObjectStore
    refs: DiskRefsContainer

    def __init__(self, root: str | os.PathLike[str]) -> None:
        """Open a repository on disk.

        Args:
          root: Path to the repository's working tree.
        Raises:
          NotGitRepository: if there is no ``.git`` directory below root
        """
        root = os.fspath(root)
        controldir = os.path.join(root, CONTROLDIR)
        if not os.path.isdir(controldir):
            raise NotGitRepository(f"No git repository was found at {root}")
        self.path = root
        self._controldir = controldir
        self._config = self._read_config()
        self.object_store = DiskObjectStore(
            os.path.join(controldir, OBJECTDIR),
            compression_level=compression_level(self._config),
        )
        self.refs = DiskRefsContainer(controldir)

    def __repr__(self) -> str:
        return f"<Repo at {self.path!r}>"

    def _read_config(self) -> ConfigFile:
        path = os.path.join(self._controldir, "config")
        try:
            return ConfigFile.from_path(path)
        except FileNotFoundError:
            ret = ConfigFile()
            ret.path = path
            return ret

    @classmethod
    def init(cls, path: str | os.PathLike[str], *, mkdir: bool = False) -> "Repo":
        """Create a new repository.

        Args:
          path: Path in which to create the repository
          mkdir: Whether to create the directory
        Returns: `Repo` instance
        Raises:
          FileExistsError: if the repository already exists
        """
        path = os.fspath(path)
        if mkdir:
            os.mkdir(path)
        controldir = os.path.join(path, CONTROLDIR)
        os.mkdir(controldir)
        for d in BASE_DIRECTORIES:
            os.mkdir(os.path.join(controldir, *d))
        cf = ConfigFile()
        cf.set("core", "repositoryformatversion", "0")
        cf.set("core", "filemode", os.name != "nt")
        cf.set("core", "bare", False)
        cf.write_to_path(os.path.join(controldir, "config"))
        write_locked(
            os.path.join(controldir, HEADREF),
            f"ref: {LOCAL_BRANCH_PREFIX}{DEFAULT_BRANCH}\n".encode("ascii"),
        )
        logger.debug("initialized repository at %s", path)
        return cls(path)

    @classmethod
    def discover(cls, start: str | os.PathLike[str] = ".") -> "Repo":
        """Iterate parent directories to discover a repository.

        Return a Repo object for the first parent directory that looks like a
        Git repository.

        Args:
          start: The directory to start discovery from (defaults to '.')
        """
        path = os.path.abspath(start)
        while True:
            try:
                return cls(path)
            except NotGitRepository:
                new_path, _tail = os.path.split(path)
                if new_path == path:  # Root reached
                    break
                path = new_path
        raise NotGitRepository(f"No git repository was found at {os.fspath(start)}")

    def controldir(self) -> str:
        """Return the path of the control directory."""
        return self._controldir

    def get_config(self) -> ConfigFile:
        """Retrieve the config object."""
        return self._config

    def head(self) -> str:
        """Return the id the current head points to.

        Raises:
          RefMissing: if the current branch has no commits yet
        """
        return self.refs[HEADREF]

    def __getitem__(self, name: str) -> ShaFile:
        """Retrieve an object by id."""
        return self.object_store[name]

    def __contains__(self, name: str) -> bool:
        return name in self.object_store

    def get_tree(self, tree_id: str) -> Tree:
        """Load a tree.

        Raises:
          ObjectMissing: if the object does not exist
          NotTreeError: if the object is not a tree
        """
        tree = self.object_store.load_as(tree_id, Tree, NotTreeError)
        assert isinstance(tree, Tree)
        return tree

    def list_tree(self, tree_id: str) -> list[TreeEntry]:
        """Return the entries of a tree, in stored order."""
        return self.get_tree(tree_id).entries()

    def hash_file(self, path: str | os.PathLike[str], write: bool = False) -> str:
        """Compute the blob id of a file, optionally storing it.

        Args:
          path: File to read
          write: Whether to store the blob in the object store
        Returns: The blob id
        """
        with open(path, "rb") as f:
            data = f.read()
        if write:
            return self.object_store.store(Blob, data)
        return hash_object(Blob, data)

    def build_tree(self, directory: str | os.PathLike[str] | None = None) -> str:
        """Store a directory snapshot as trees and blobs.

        Entries are visited sorted by name. The control directory is
        skipped, symlinks are followed, and every file is stored with mode
        100644. A directory symlink pointing back at one of its own
        ancestors is skipped.

        Args:
          directory: Directory to snapshot; defaults to the working tree
        Returns: id of the root tree
        """
        if directory is None:
            directory = self.path
        directory = os.fspath(directory)
        return self._build_tree(directory, (_stat_key(os.stat(directory)),))

    def _build_tree(self, directory: str, ancestors: tuple[tuple[int, int], ...]) -> str:
        controldir = _stat_key(os.stat(self._controldir))
        tree = Tree()
        with os.scandir(directory) as it:
            entries = sorted(it, key=lambda e: os.fsencode(e.name))
        for entry in entries:
            if entry.is_dir():
                key = _stat_key(entry.stat())
                if key == controldir:
                    continue
                if key in ancestors:
                    logger.debug("skipping %s: symlink loop", entry.path)
                    continue
                tree.add(
                    TREE_MODE, entry.name, self._build_tree(entry.path, (*ancestors, key))
                )
            elif entry.is_file():
                tree.add(BLOB_MODE, entry.name, self.hash_file(entry.path, write=True))
            else:
                logger.debug("skipping %s: not a regular file or directory", entry.path)
        return self.object_store.add_object(tree)

    def build_commit(
        self,
        author: str | None,
        tree_id: str,
        parent_id: str | None,
        message: str,
        commit_time: int | None = None,
        commit_timezone: int | None = None,
    ) -> str:
        """Create a commit and point the current branch at it.

        The commit object is stored before the ref is touched; if storing
        fails the exception propagates and the ref keeps its old value.

        Args:
          author: ``Name <email>``; defaults to the configured identity.
            Also used as the committer.
          tree_id: id of the tree to commit
          parent_id: id of the parent commit, or None/empty for a root commit
          message: Commit message; a trailing newline is added if missing
          commit_time: Seconds since the epoch; defaults to now
          commit_timezone: Offset in seconds east of UTC; defaults to the
            local timezone
        Returns: id of the new commit
        """
        if not valid_hexsha(tree_id):
            raise ValueError(f"Invalid tree id {tree_id!r}")
        if author is None:
            author = get_user_identity(self._config)
        if commit_time is None:
            commit_time = int(time.time())
        if commit_timezone is None:
            commit_timezone = _local_timezone(commit_time)
        if not message.endswith("\n"):
            message += "\n"
        c = Commit()
        c.tree = tree_id
        if parent_id:
            if not valid_hexsha(parent_id):
                raise ValueError(f"Invalid parent id {parent_id!r}")
            c.parents = [parent_id]
        c.author = c.committer = author
        c.author_time = c.commit_time = commit_time
        c.author_timezone = c.commit_timezone = commit_timezone
        c.message = message
        commit_id = self.object_store.add_object(c)
        self.refs.set_ref(HEADREF, commit_id)
        return commit_id

    def checkout_tree(self, tree_id: str, base_path: str | os.PathLike[str]) -> None:
        """Write the contents of a tree below base_path.

        Directories are created for subtrees and blob contents are written
        verbatim; base_path itself must exist.

        Raises:
          NotTreeError: if tree_id or a subtree is not a tree
          NotBlobError: if a file entry does not point at a blob
          ObjectFormatException: if an entry name would leave base_path or
            write into the control directory
        """
        base_path = os.fspath(base_path)
        for entry in self.list_tree(tree_id):
            if not validate_path_element(entry.name):
                raise ObjectFormatException(
                    f"refusing to check out tree entry {entry.name!r}"
                )
            target = os.path.join(base_path, entry.name)
            if entry.is_tree():
                os.makedirs(target, exist_ok=True)
                self.checkout_tree(entry.sha, target)
            else:
                blob = self.object_store.load_as(entry.sha, Blob, NotBlobError)
                with open(target, "wb") as f:
                    f.write(blob.as_raw_string())

    def checkout_commit(self, commit_id: str, base_path: str | os.PathLike[str]) -> str:
        """Write the tree of a commit below base_path.

        Returns: id of the tree that was checked out
        Raises:
          NotCommitError: if commit_id is not a commit
        """
        commit = self.object_store.load_as(commit_id, Commit, NotCommitError)
        assert isinstance(commit, Commit)
        logger.debug("checking out %s into %s", commit_id, base_path)
        self.checkout_tree(commit.tree, base_path)
        return commit.tree

    def fetch_pack_data(self, data: bytes) -> Packfile:
        """Decode a pack and store its objects.

        Returns: The decoded pack
        """
        pack = decode_packfile(data)
        self.object_store.persist_entries(pack.entries)
        return pack
