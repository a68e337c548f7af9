#!/usr/bin/env python3
#
# gitcore - Simple command-line interface to gitcore
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

"""Simple command-line interface to gitcore.

Every subcommand works on the repository containing the current directory
and writes its output only once the operation has succeeded. Failures are
reported as ``error: <kind>: <message>`` with exit status 1.
"""

__all__ = [
    "Command",
    "commands",
    "main",
]

import argparse
import logging
import os
import sys
from collections.abc import Sequence
from typing import ClassVar

from .clone import do_clone
from .errors import (
    FileFormatException,
    GitProtocolError,
    MissingDeltaBase,
    NotFoundError,
    NotGitRepository,
    RefFormatError,
    SymrefLoop,
    UnsupportedObjectType,
    WrongObjectException,
)
from .file import FileLocked
from .log_utils import default_logging_config
from .objects import Blob, hash_object
from .repo import Repo

logger = logging.getLogger(__name__)

# Error kinds reported by main(), most specific first
_ERROR_KINDS: list[tuple[type[BaseException] | tuple[type[BaseException], ...], str]] = [
    (NotFoundError, "not found"),
    (FileFormatException, "corrupt"),
    (UnsupportedObjectType, "unsupported"),
    (MissingDeltaBase, "missing base"),
    (WrongObjectException, "wrong object type"),
    ((NotGitRepository, FileLocked, RefFormatError, SymrefLoop), "repository"),
    ((GitProtocolError, OSError), "io"),
    (ValueError, "invalid argument"),
]


def _write(data: bytes) -> None:
    sys.stdout.flush()
    sys.stdout.buffer.write(data)
    sys.stdout.buffer.flush()


class Command:
    """A gitcore subcommand."""

    help: ClassVar[str] = ""

    def run(self, args: Sequence[str]) -> int | None:
        """Run the command."""
        raise NotImplementedError(self.run)


class cmd_init(Command):
    """Create an empty Git repository."""

    def run(self, args: Sequence[str]) -> None:
        parser = argparse.ArgumentParser(prog="gitcore init")
        parser.add_argument("path", nargs="?", default=".", help="Repository path")
        parsed_args = parser.parse_args(args)
        repo = Repo.init(parsed_args.path, mkdir=not os.path.exists(parsed_args.path))
        controldir = os.path.abspath(repo.controldir())
        _write(f"Initialized empty Git repository in {controldir}{os.sep}\n".encode())


class cmd_cat_file(Command):
    """Provide contents or type of repository objects."""

    def run(self, args: Sequence[str]) -> None:
        parser = argparse.ArgumentParser(prog="gitcore cat-file")
        group = parser.add_mutually_exclusive_group(required=True)
        group.add_argument(
            "-p", dest="pretty", action="store_true", help="Pretty-print the object"
        )
        group.add_argument(
            "-t", dest="show_type", action="store_true", help="Show the object type"
        )
        parser.add_argument("object", help="Object id")
        parsed_args = parser.parse_args(args)
        repo = Repo.discover()
        obj = repo[parsed_args.object]
        if parsed_args.show_type:
            _write(obj.type_name.encode("ascii") + b"\n")
        elif isinstance(obj, Blob):
            _write(obj.data)
        else:
            _write(obj.as_pretty_string().encode("utf-8", "surrogateescape"))


class cmd_hash_object(Command):
    """Compute the object id of a file, optionally storing it as a blob."""

    def run(self, args: Sequence[str]) -> None:
        parser = argparse.ArgumentParser(prog="gitcore hash-object")
        parser.add_argument(
            "-w", dest="write", action="store_true", help="Write the object"
        )
        parser.add_argument("path", help="File to hash")
        parsed_args = parser.parse_args(args)
        if parsed_args.write:
            sha = Repo.discover().hash_file(parsed_args.path, write=True)
        else:
            with open(parsed_args.path, "rb") as f:
                sha = hash_object(Blob, f.read())
        _write(sha.encode("ascii") + b"\n")


class cmd_ls_tree(Command):
    """List the contents of a tree object."""

    def run(self, args: Sequence[str]) -> None:
        parser = argparse.ArgumentParser(prog="gitcore ls-tree")
        parser.add_argument(
            "--name-only", action="store_true", help="Only display name."
        )
        parser.add_argument("tree", help="Tree id to list")
        parsed_args = parser.parse_args(args)
        entries = Repo.discover().list_tree(parsed_args.tree)
        lines = []
        for entry in entries:
            if parsed_args.name_only:
                lines.append(f"{entry.name}\n")
            else:
                lines.append(f"{entry.mode}\t{entry.name}\t{entry.sha}\n")
        _write("".join(lines).encode("utf-8", "surrogateescape"))


class cmd_write_tree(Command):
    """Create a tree object from the working tree."""

    def run(self, args: Sequence[str]) -> None:
        parser = argparse.ArgumentParser(prog="gitcore write-tree")
        parser.parse_args(args)
        repo = Repo.discover()
        _write(repo.build_tree().encode("ascii") + b"\n")


class cmd_commit_tree(Command):
    """Create a new commit object from a tree."""

    def run(self, args: Sequence[str]) -> None:
        parser = argparse.ArgumentParser(prog="gitcore commit-tree")
        parser.add_argument("--message", "-m", required=True, help="Commit message")
        parser.add_argument("-p", dest="parent", help="Parent commit id")
        parser.add_argument("tree", help="Tree id to commit")
        parsed_args = parser.parse_args(args)
        repo = Repo.discover()
        sha = repo.build_commit(
            None, parsed_args.tree, parsed_args.parent, parsed_args.message
        )
        _write(sha.encode("ascii") + b"\n")


class cmd_clone(Command):
    """Clone a repository into a new directory."""

    def run(self, args: Sequence[str]) -> None:
        parser = argparse.ArgumentParser(prog="gitcore clone")
        parser.add_argument(
            "--no-checkout",
            dest="checkout",
            action="store_false",
            help="Do not check out a working tree",
        )
        parser.add_argument("url", help="Repository URL")
        parser.add_argument("path", help="Target directory")
        parsed_args = parser.parse_args(args)
        do_clone(
            parsed_args.url,
            parsed_args.path,
            checkout=parsed_args.checkout,
            errstream=sys.stderr.buffer,
        )


commands: dict[str, type[Command]] = {
    "cat-file": cmd_cat_file,
    "clone": cmd_clone,
    "commit-tree": cmd_commit_tree,
    "hash-object": cmd_hash_object,
    "init": cmd_init,
    "ls-tree": cmd_ls_tree,
    "write-tree": cmd_write_tree,
}


def _error_kind(exc: BaseException) -> str | None:
    for classes, kind in _ERROR_KINDS:
        if isinstance(exc, classes):
            return kind
    return None


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point for the gitcore CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    if argv is None:
        argv = sys.argv[1:]

    default_logging_config()

    if not argv or argv[0] in ("-h", "--help"):
        sys.stderr.write(
            "usage: gitcore <command> [<args>]\n\n"
            f"Available commands: {', '.join(sorted(commands))}\n"
        )
        return 1

    cmd = argv[0]
    try:
        cmd_kls = commands[cmd]
    except KeyError:
        logging.fatal("No such subcommand: %s", cmd)
        return 1
    try:
        return cmd_kls().run(argv[1:]) or 0
    except Exception as e:
        kind = _error_kind(e)
        if kind is None:
            raise
        logger.debug("%s failed", cmd, exc_info=True)
        logging.error("error: %s: %s", kind, e)
        return 1


def _main() -> None:
    sys.exit(main())


if __name__ == "__main__":
    _main()
