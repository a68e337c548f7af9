# test_cli.py -- tests for the command-line interface
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

"""Tests for the gitcore command-line interface."""

import io
import logging
import os
from unittest import mock

from gitcore import cli
from gitcore.objects import Tree, hash_object

from . import TestCase

HELLO_BLOB_ID = "ce013625030ba8dba906f756967f9e9ca394464a"


class CliTestCase(TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.path = self.make_temp_dir()
        old_cwd = os.getcwd()
        os.chdir(self.path)
        self.addCleanup(os.chdir, old_cwd)
        patcher = mock.patch("gitcore.cli.default_logging_config")
        self.logging_config = patcher.start()
        self.addCleanup(patcher.stop)

    def run_command(self, *args: str) -> tuple[int, bytes]:
        out = io.BytesIO()
        stdout = io.TextIOWrapper(out)
        with mock.patch("sys.stdout", stdout):
            retcode = cli.main(list(args))
            stdout.flush()
            output = out.getvalue()
        return retcode, output

    def run_failing(self, *args: str) -> str:
        """Run a command that should fail and return its error message."""
        with self.assertLogs(level=logging.ERROR) as cm:
            retcode, output = self.run_command(*args)
        self.assertEqual(1, retcode)
        self.assertEqual(b"", output)
        return cm.records[-1].getMessage()

    def write_file(self, relpath: str, contents: bytes) -> None:
        with open(os.path.join(self.path, relpath), "wb") as f:
            f.write(contents)


class MainTests(CliTestCase):
    def test_no_arguments(self) -> None:
        with mock.patch("sys.stderr", io.StringIO()) as stderr:
            self.assertEqual(1, cli.main([]))
        self.assertIn("usage: gitcore", stderr.getvalue())
        self.logging_config.assert_called_once_with()

    def test_unknown_command(self) -> None:
        with self.assertLogs(level=logging.CRITICAL):
            self.assertEqual(1, cli.main(["frobnicate"]))

    def test_outside_repository(self) -> None:
        message = self.run_failing("write-tree")
        self.assertTrue(message.startswith("error: repository: "), message)


class InitTests(CliTestCase):
    def test_init(self) -> None:
        retcode, output = self.run_command("init", "repo")
        self.assertEqual(0, retcode)
        controldir = os.path.join(self.path, "repo", ".git")
        self.assertTrue(os.path.isdir(controldir))
        self.assertEqual(
            f"Initialized empty Git repository in {controldir}{os.sep}\n".encode(),
            output,
        )

    def test_init_current_directory(self) -> None:
        retcode, _ = self.run_command("init")
        self.assertEqual(0, retcode)
        self.assertTrue(os.path.isdir(os.path.join(self.path, ".git")))

    def test_init_twice(self) -> None:
        self.run_command("init")
        message = self.run_failing("init")
        self.assertTrue(message.startswith("error: io: "), message)


class ObjectCommandTests(CliTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.run_command("init")

    def test_hash_object(self) -> None:
        self.write_file("hello.txt", b"hello\n")
        self.assertEqual(
            (0, HELLO_BLOB_ID.encode() + b"\n"),
            self.run_command("hash-object", "hello.txt"),
        )
        self.assertFalse(
            os.path.exists(os.path.join(self.path, ".git", "objects", "ce"))
        )
        self.assertEqual(
            (0, HELLO_BLOB_ID.encode() + b"\n"),
            self.run_command("hash-object", "-w", "hello.txt"),
        )
        self.assertTrue(
            os.path.exists(
                os.path.join(self.path, ".git", "objects", "ce", HELLO_BLOB_ID[2:])
            )
        )

    def test_cat_file(self) -> None:
        self.write_file("hello.txt", b"hello\n")
        self.run_command("hash-object", "-w", "hello.txt")
        self.assertEqual((0, b"hello\n"), self.run_command("cat-file", "-p", HELLO_BLOB_ID))
        self.assertEqual((0, b"blob\n"), self.run_command("cat-file", "-t", HELLO_BLOB_ID))

    def test_cat_file_missing(self) -> None:
        message = self.run_failing("cat-file", "-p", "a" * 40)
        self.assertTrue(message.startswith("error: not found: "), message)

    def test_cat_file_corrupt(self) -> None:
        os.makedirs(os.path.join(self.path, ".git", "objects", "bb"))
        with open(os.path.join(self.path, ".git", "objects", "bb", "b" * 38), "wb") as f:
            f.write(b"garbage")
        message = self.run_failing("cat-file", "-t", "b" * 40)
        self.assertTrue(message.startswith("error: corrupt: "), message)

    def test_write_tree_and_ls_tree(self) -> None:
        self.write_file("hello.txt", b"hello\n")
        os.mkdir(os.path.join(self.path, "sub"))
        retcode, output = self.run_command("write-tree")
        self.assertEqual(0, retcode)
        tree_id = output.decode("ascii").strip()
        subtree_id = Tree().id
        self.assertEqual(
            (
                0,
                f"100644\thello.txt\t{HELLO_BLOB_ID}\n40000\tsub\t{subtree_id}\n".encode(),
            ),
            self.run_command("ls-tree", tree_id),
        )
        self.assertEqual(
            (0, b"hello.txt\nsub\n"),
            self.run_command("ls-tree", "--name-only", tree_id),
        )
        retcode, output = self.run_command("cat-file", "-p", tree_id)
        self.assertIn(f"040000 tree {subtree_id}\tsub\n".encode(), output)

    def test_ls_tree_of_blob(self) -> None:
        self.write_file("hello.txt", b"hello\n")
        self.run_command("hash-object", "-w", "hello.txt")
        message = self.run_failing("ls-tree", HELLO_BLOB_ID)
        self.assertTrue(message.startswith("error: wrong object type: "), message)

    def test_commit_tree(self) -> None:
        self.write_file("hello.txt", b"hello\n")
        _, output = self.run_command("write-tree")
        tree_id = output.decode("ascii").strip()
        retcode, output = self.run_command("commit-tree", "-m", "first", tree_id)
        self.assertEqual(0, retcode)
        first = output.decode("ascii").strip()
        with open(os.path.join(self.path, ".git", "refs", "heads", "master")) as f:
            self.assertEqual(first + "\n", f.read())
        retcode, output = self.run_command(
            "commit-tree", "-m", "second", "-p", first, tree_id
        )
        second = output.decode("ascii").strip()
        _, pretty = self.run_command("cat-file", "-p", second)
        self.assertIn(f"parent {first}\n".encode(), pretty)
        self.assertTrue(pretty.endswith(b"\nsecond\n"))

    def test_commit_tree_invalid_tree(self) -> None:
        message = self.run_failing("commit-tree", "-m", "msg", "nope")
        self.assertTrue(message.startswith("error: invalid argument: "), message)

    def test_hash_object_outside_repository(self) -> None:
        other = self.make_temp_dir()
        path = os.path.join(other, "f")
        with open(path, "wb") as f:
            f.write(b"data")
        os.chdir(other)
        self.assertEqual(
            (0, hash_object("blob", b"data").encode() + b"\n"),
            self.run_command("hash-object", path),
        )
