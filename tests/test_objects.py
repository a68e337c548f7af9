# test_objects.py -- tests for objects.py
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

"""Tests for git base objects."""

from gitcore.errors import ObjectFormatException, UnsupportedObjectType
from gitcore.objects import (
    BLOB_MODE,
    TREE_MODE,
    Blob,
    Commit,
    ShaFile,
    Tree,
    TreeEntry,
    format_timezone,
    hash_object,
    hex_to_filename,
    hex_to_sha,
    object_class,
    object_header,
    parse_commit,
    parse_timezone,
    parse_tree,
    serialize_tree,
    sha_to_hex,
    valid_hexsha,
)

from . import TestCase
from .utils import make_commit

HELLO_BLOB_ID = "ce013625030ba8dba906f756967f9e9ca394464a"
EMPTY_BLOB_ID = "e69de29bb2d1d6434b8b29ae775ad8c2e48c5391"
EMPTY_TREE_ID = "4b825dc642cb6eb9a060e54bf8d69288fbee4904"
A_SHA = "a" * 40
B_SHA = "b" * 40


class HashTests(TestCase):
    def test_hello_blob(self) -> None:
        self.assertEqual(HELLO_BLOB_ID, hash_object("blob", b"hello\n"))
        self.assertEqual(HELLO_BLOB_ID, hash_object(Blob, b"hello\n"))
        self.assertEqual(HELLO_BLOB_ID, hash_object(3, b"hello\n"))

    def test_empty_objects(self) -> None:
        self.assertEqual(EMPTY_BLOB_ID, hash_object("blob", b""))
        self.assertEqual(EMPTY_TREE_ID, hash_object("tree", b""))

    def test_object_header(self) -> None:
        self.assertEqual(b"blob 6\0", object_header("blob", 6))
        self.assertEqual(b"commit 0\0", object_header(1, 0))
        self.assertEqual(b"tag 3\0", object_header("tag", 3))

    def test_unknown_kind(self) -> None:
        self.assertRaises(ObjectFormatException, hash_object, "frob", b"")
        self.assertRaises(ObjectFormatException, hash_object, 5, b"")

    def test_hash_is_lowercase_hex(self) -> None:
        self.assertTrue(valid_hexsha(hash_object("blob", b"anything")))


class HexTests(TestCase):
    def test_round_trip(self) -> None:
        self.assertEqual(bytes(range(20)), hex_to_sha(sha_to_hex(bytes(range(20)))))
        self.assertEqual(HELLO_BLOB_ID, sha_to_hex(hex_to_sha(HELLO_BLOB_ID)))

    def test_invalid(self) -> None:
        self.assertRaises(ValueError, sha_to_hex, b"\x00" * 19)
        self.assertRaises(ValueError, hex_to_sha, "xyz")
        self.assertRaises(ValueError, hex_to_sha, HELLO_BLOB_ID.upper())

    def test_valid_hexsha(self) -> None:
        self.assertTrue(valid_hexsha(A_SHA))
        self.assertFalse(valid_hexsha("a" * 39))
        self.assertFalse(valid_hexsha("A" * 40))
        self.assertFalse(valid_hexsha("g" * 40))
        self.assertFalse(valid_hexsha(b"a" * 40))

    def test_hex_to_filename(self) -> None:
        self.assertEqual(
            "/objects/ce/013625030ba8dba906f756967f9e9ca394464a",
            hex_to_filename("/objects", HELLO_BLOB_ID),
        )
        self.assertRaises(ValueError, hex_to_filename, "/objects", "../../etc")


class ObjectClassTests(TestCase):
    def test_lookup(self) -> None:
        self.assertIs(Blob, object_class("blob"))
        self.assertIs(Tree, object_class(2))
        self.assertIs(Commit, object_class("commit"))

    def test_tag_unsupported(self) -> None:
        self.assertRaises(UnsupportedObjectType, object_class, "tag")
        self.assertRaises(UnsupportedObjectType, object_class, 4)

    def test_unknown(self) -> None:
        self.assertRaises(ObjectFormatException, object_class, "frob")
        self.assertRaises(ObjectFormatException, object_class, 6)


class BlobTests(TestCase):
    def test_id(self) -> None:
        self.assertEqual(HELLO_BLOB_ID, Blob(b"hello\n").id)

    def test_binary_data(self) -> None:
        data = b"\xff\xfe\x00binary"
        b = ShaFile.from_raw_string("blob", data)
        self.assertIsInstance(b, Blob)
        self.assertEqual(data, b.data)
        self.assertEqual(data, b.as_raw_string())

    def test_set_data_resets_cache(self) -> None:
        b = Blob(b"one")
        first = b.id
        b.data = b"two"
        self.assertNotEqual(first, b.id)
        self.assertEqual(b"two", b.as_raw_string())

    def test_eq(self) -> None:
        self.assertEqual(Blob(b"x"), Blob.from_string(b"x"))
        self.assertNotEqual(Blob(b"x"), Blob(b"y"))


class TreeParseTests(TestCase):
    def test_parse_keeps_order(self) -> None:
        data = (
            b"100644 zeta\0" + hex_to_sha(A_SHA) + b"40000 alpha\0" + hex_to_sha(B_SHA)
        )
        self.assertEqual(
            [
                TreeEntry("100644", "zeta", A_SHA),
                TreeEntry("40000", "alpha", B_SHA),
            ],
            parse_tree(data),
        )

    def test_parse_empty(self) -> None:
        self.assertEqual([], parse_tree(b""))

    def test_truncated_sha(self) -> None:
        data = b"100644 a\0" + hex_to_sha(A_SHA)[:19]
        self.assertRaises(ObjectFormatException, parse_tree, data)

    def test_missing_space(self) -> None:
        self.assertRaises(ObjectFormatException, parse_tree, b"100644")

    def test_missing_nul(self) -> None:
        self.assertRaises(ObjectFormatException, parse_tree, b"100644 name")

    def test_empty_mode(self) -> None:
        data = b" a\0" + hex_to_sha(A_SHA)
        self.assertRaises(ObjectFormatException, parse_tree, data)

    def test_invalid_mode(self) -> None:
        data = b"10x644 a\0" + hex_to_sha(A_SHA)
        self.assertRaises(ObjectFormatException, parse_tree, data)

    def test_name_with_slash(self) -> None:
        data = b"100644 ../escaped.txt\0" + hex_to_sha(A_SHA)
        self.assertRaises(ObjectFormatException, parse_tree, data)

    def test_non_utf8_name(self) -> None:
        data = b"100644 \xff\xfe\0" + hex_to_sha(A_SHA)
        entries = parse_tree(data)
        self.assertEqual(data, serialize_tree(entries))


class TreeSerializeTests(TestCase):
    def test_serialize(self) -> None:
        self.assertEqual(
            b"100644 f.txt\0" + hex_to_sha(A_SHA),
            serialize_tree([("100644", "f.txt", A_SHA)]),
        )

    def test_invalid_names(self) -> None:
        for name in ("", "a/b", "a\0b"):
            self.assertRaises(ValueError, serialize_tree, [("100644", name, A_SHA)])

    def test_invalid_mode(self) -> None:
        self.assertRaises(ValueError, serialize_tree, [("", "a", A_SHA)])

    def test_tree_round_trip(self) -> None:
        t = Tree()
        t.add(BLOB_MODE, "b.txt", A_SHA)
        t.add(TREE_MODE, "a", B_SHA)
        parsed = ShaFile.from_raw_string("tree", t.as_raw_string())
        self.assertIsInstance(parsed, Tree)
        self.assertEqual(t.entries(), parsed.entries())
        self.assertEqual(t.id, parsed.id)

    def test_empty_tree(self) -> None:
        self.assertEqual(EMPTY_TREE_ID, Tree().id)

    def test_add_invalid_sha(self) -> None:
        self.assertRaises(ValueError, Tree().add, BLOB_MODE, "a", "not-a-sha")

    def test_pretty(self) -> None:
        t = Tree([(TREE_MODE, "dir", B_SHA), (BLOB_MODE, "file", A_SHA)])
        self.assertEqual(
            f"040000 tree {B_SHA}\tdir\n100644 blob {A_SHA}\tfile\n",
            t.as_pretty_string(),
        )

    def test_entry_is_tree(self) -> None:
        self.assertTrue(TreeEntry(TREE_MODE, "d", A_SHA).is_tree())
        self.assertFalse(TreeEntry(BLOB_MODE, "f", A_SHA).is_tree())


class TimezoneTests(TestCase):
    def test_parse(self) -> None:
        self.assertEqual(0, parse_timezone("+0000"))
        self.assertEqual(3600, parse_timezone("+0100"))
        self.assertEqual(-(5 * 3600 + 30 * 60), parse_timezone("-0530"))

    def test_format(self) -> None:
        self.assertEqual("+0000", format_timezone(0))
        self.assertEqual("+0200", format_timezone(7200))
        self.assertEqual("-0530", format_timezone(-(5 * 3600 + 30 * 60)))

    def test_invalid(self) -> None:
        self.assertRaises(ObjectFormatException, parse_timezone, "0100")
        self.assertRaises(ObjectFormatException, parse_timezone, "+01")
        self.assertRaises(ValueError, format_timezone, 30)


class CommitSerializationTests(TestCase):
    def test_without_parent(self) -> None:
        c = make_commit(tree=A_SHA, message="first\n")
        self.assertEqual(
            (
                f"tree {A_SHA}\n"
                "author Test Author <test@example.com> 1262304000 +0000\n"
                "committer Test Author <test@example.com> 1262304000 +0000\n"
                "\n"
                "first\n"
            ).encode(),
            c.as_raw_string(),
        )

    def test_with_parent(self) -> None:
        c = make_commit(tree=A_SHA, parents=[B_SHA], commit_timezone=3600)
        lines = c.as_raw_string().split(b"\n")
        self.assertEqual(f"tree {A_SHA}".encode(), lines[0])
        self.assertEqual(f"parent {B_SHA}".encode(), lines[1])
        self.assertTrue(lines[3].endswith(b"1262304000 +0100"))

    def test_round_trip(self) -> None:
        for parents in ([], [B_SHA]):
            c = make_commit(tree=A_SHA, parents=parents, message="msg\n\nbody\n")
            parsed = parse_commit(c.as_raw_string())
            self.assertEqual(A_SHA, parsed.tree)
            self.assertEqual(parents, parsed.parents)
            self.assertEqual(c.author, parsed.author)
            self.assertEqual(c.commit_time, parsed.commit_time)
            self.assertEqual("msg\n\nbody\n", parsed.message)
            self.assertEqual(c.as_raw_string(), parsed.as_raw_string())
            self.assertEqual(c.id, parsed.id)

    def test_missing_tree(self) -> None:
        c = Commit()
        c.author = c.committer = "A <a@example.com>"
        self.assertRaises(ObjectFormatException, c.as_raw_string)


class CommitParseTests(TestCase):
    def make_text(self, headers: list[str], message: str = "msg\n") -> bytes:
        return ("\n".join(headers) + "\n\n" + message).encode()

    def test_tree_line_first(self) -> None:
        text = self.make_text(
            [
                "author A <a@example.com> 1 +0000",
                f"tree {A_SHA}",
                "committer A <a@example.com> 1 +0000",
            ]
        )
        self.assertRaises(ObjectFormatException, parse_commit, text)

    def test_invalid_tree_id(self) -> None:
        text = self.make_text(
            [
                "tree xyz",
                "author A <a@example.com> 1 +0000",
                "committer A <a@example.com> 1 +0000",
            ]
        )
        self.assertRaises(ObjectFormatException, parse_commit, text)

    def test_missing_committer(self) -> None:
        text = self.make_text([f"tree {A_SHA}", "author A <a@example.com> 1 +0000"])
        self.assertRaises(ObjectFormatException, parse_commit, text)

    def test_no_blank_line(self) -> None:
        self.assertRaises(ObjectFormatException, parse_commit, f"tree {A_SHA}\n".encode())

    def test_bad_identity(self) -> None:
        text = self.make_text(
            [
                f"tree {A_SHA}",
                "author A <a@example.com> soon +0000",
                "committer A <a@example.com> 1 +0000",
            ]
        )
        self.assertRaises(ObjectFormatException, parse_commit, text)

    def test_extra_headers_preserved(self) -> None:
        text = self.make_text(
            [
                f"tree {A_SHA}",
                "author A <a@example.com> 1 +0000",
                "committer A <a@example.com> 1 +0000",
                "gpgsig -----BEGIN PGP SIGNATURE-----",
                " line two",
                " -----END PGP SIGNATURE-----",
            ]
        )
        c = parse_commit(text)
        self.assertEqual(
            [
                (
                    "gpgsig",
                    "-----BEGIN PGP SIGNATURE-----\nline two\n-----END PGP SIGNATURE-----",
                )
            ],
            c.extra,
        )
        c.message = "msg\n"
        self.assertEqual(text, c.as_raw_string())

    def test_from_raw_string(self) -> None:
        c = make_commit(tree=A_SHA)
        parsed = ShaFile.from_raw_string(1, c.as_raw_string())
        self.assertIsInstance(parsed, Commit)
        self.assertEqual(c, parsed)
