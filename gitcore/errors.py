# errors.py -- errors for gitcore
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

"""Exception classes raised by gitcore.

Errors fall into a handful of kinds: an object or ref that is not there
(:class:`NotFoundError`), bytes that do not follow the expected format
(:class:`FileFormatException`), formats this implementation deliberately does
not handle (:class:`UnsupportedObjectType`) and deltas whose base has not been
seen (:class:`MissingDeltaBase`). Failures of the operating system surface as
the builtin :class:`OSError`.
"""

__all__ = [
    "ApplyDeltaError",
    "ChecksumMismatch",
    "ConfigFormatError",
    "FileFormatException",
    "GitProtocolError",
    "HangupException",
    "MissingDeltaBase",
    "NotBlobError",
    "NotCommitError",
    "NotFoundError",
    "NotGitRepository",
    "NotTreeError",
    "ObjectFormatException",
    "ObjectMissing",
    "RefFormatError",
    "RefMissing",
    "SymrefLoop",
    "UnsupportedObjectType",
    "WrongObjectException",
]


class NotFoundError(KeyError):
    """Base class for lookups of things that do not exist."""

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message
        return str(self.args[0]) if self.args else ""


class ObjectMissing(NotFoundError):
    """Indicates that a requested object is not in the object store."""

    def __init__(self, sha: str) -> None:
        """Initialize an ObjectMissing exception.

        Args:
            sha: Hex id of the missing object.
        """
        self.sha = sha
        super().__init__(f"{sha} is not in the object store")


class RefMissing(NotFoundError):
    """Indicates that a ref does not exist or is unborn."""

    def __init__(self, name: str) -> None:
        """Initialize a RefMissing exception.

        Args:
            name: Name of the ref, e.g. ``refs/heads/master``.
        """
        self.name = name
        super().__init__(f"ref {name} does not exist")


class FileFormatException(Exception):
    """Base class for exceptions relating to reading git file formats."""


class ObjectFormatException(FileFormatException):
    """Indicates an error parsing an object or pack entry."""


class ConfigFormatError(FileFormatException):
    """Indicates an error parsing a config file."""


class ApplyDeltaError(FileFormatException):
    """Indicates that applying a delta failed."""


class ChecksumMismatch(FileFormatException):
    """A checksum didn't match the expected contents."""

    def __init__(self, expected: str, got: str, extra: str | None = None) -> None:
        """Initialize a ChecksumMismatch exception.

        Args:
            expected: The expected checksum, as a hex string.
            got: The actual checksum, as a hex string.
            extra: Optional additional error information.
        """
        self.expected = expected
        self.got = got
        self.extra = extra
        message = f"Checksum mismatch: Expected {expected}, got {got}"
        if extra is not None:
            message += f"; {extra}"
        super().__init__(message)


class UnsupportedObjectType(Exception):
    """An object or pack entry type that gitcore does not handle."""

    def __init__(self, type_name: str, *, reason: str | None = None) -> None:
        """Initialize an UnsupportedObjectType exception.

        Args:
            type_name: Name of the offending type, e.g. ``ofs-delta``.
            reason: Optional context for the message.
        """
        self.type_name = type_name
        message = f"unsupported object type {type_name}"
        if reason is not None:
            message += f" ({reason})"
        super().__init__(message)


class MissingDeltaBase(Exception):
    """A REF_DELTA entry references a base that has not been resolved."""

    def __init__(self, base_sha: str) -> None:
        """Initialize a MissingDeltaBase exception.

        Args:
            base_sha: Hex id of the missing base object.
        """
        self.base_sha = base_sha
        super().__init__(f"delta base {base_sha} has not been resolved")


class WrongObjectException(Exception):
    """Baseclass for all the _ is not a _ exceptions on objects.

    Do not instantiate directly.

    Subclasses should define a type_name attribute that indicates what
    was expected if they were raised.
    """

    type_name: str

    def __init__(self, sha: str) -> None:
        """Initialize a WrongObjectException.

        Args:
            sha: Hex id of the object that was not of the expected type.
        """
        self.sha = sha
        super().__init__(f"{sha} is not a {self.type_name}")


class NotCommitError(WrongObjectException):
    """Indicates that the sha requested does not point to a commit."""

    type_name = "commit"


class NotTreeError(WrongObjectException):
    """Indicates that the sha requested does not point to a tree."""

    type_name = "tree"


class NotBlobError(WrongObjectException):
    """Indicates that the sha requested does not point to a blob."""

    type_name = "blob"


class NotGitRepository(Exception):
    """Indicates that no Git repository was found."""


class GitProtocolError(Exception):
    """Git protocol exception."""

    def __eq__(self, other: object) -> bool:
        """Check equality between GitProtocolError instances."""
        return isinstance(other, GitProtocolError) and self.args == other.args

    def __hash__(self) -> int:
        return hash(self.args)


class HangupException(GitProtocolError):
    """Hangup exception."""

    def __init__(self) -> None:
        super().__init__("The remote server unexpectedly closed the connection.")


class RefFormatError(Exception):
    """Indicates an invalid ref name."""


class SymrefLoop(Exception):
    """There is a loop between one or more symrefs."""

    def __init__(self, ref: str, depth: int) -> None:
        """Initialize a SymrefLoop exception.

        Args:
            ref: The ref where resolution gave up.
            depth: How many symbolic refs were followed.
        """
        self.ref = ref
        self.depth = depth
        super().__init__(f"symref loop at {ref} after {depth} levels")
