"""Tests for the edit engine."""

import random

import pytest

from livecanvas.config import EditorConfig
from livecanvas.engine import EditEngine, insert_lines, replace_occurrence
from livecanvas.errors import NotFoundError, PatternNotFoundError, UnsupportedCommandError
from livecanvas.types import (
    Copy,
    CreateDirectory,
    CreateFile,
    Delete,
    InsertAt,
    Move,
    Rename,
    ReplaceContent,
    UndoLast,
    UnknownTool,
    UnsupportedCommand,
    UnsupportedOperation,
    ViewFile,
)


class TestHelpers:
    def test_insert_lines_at_top(self):
        assert insert_lines("a\nb", 1, "x") == "x\na\nb"

    def test_insert_lines_middle_keeps_trailing_newline(self):
        assert insert_lines("a\nb\n", 2, "x\n") == "a\nx\nb\n"

    def test_insert_lines_past_end_appends(self):
        assert insert_lines("a\nb", 10, "x") == "a\nb\nx"

    def test_insert_into_empty(self):
        assert insert_lines("", 1, "x") == "x"

    def test_replace_occurrence(self):
        assert replace_occurrence("a-a-a", "a", "b", 2) == "a-b-a"
        assert replace_occurrence("a-a", "a", "b", 3) is None


class TestContentEdits:
    """Tests for create, str_replace, insert and undo."""

    def test_create_then_overwrite(self, engine, tree):
        result = engine.apply(CreateFile("/App.jsx", "one"))
        assert result.ok
        assert result.message == "Created file: /App.jsx"
        assert result.data["version"] == 1

        result = engine.apply(CreateFile("/App.jsx", "two"))
        assert result.message == "Overwrote file: /App.jsx"
        assert tree.read("/App.jsx") == "two"

    def test_create_reports_line_count(self, engine):
        assert engine.apply(CreateFile("/App.jsx", "a\nb\nc")).data["lines"] == 3
        assert engine.apply(CreateFile("/Empty.jsx", "")).data["lines"] == 0

    def test_replace_first_occurrence(self, engine, tree):
        tree.put("/App.jsx", "<b>x</b><b>y</b>")
        result = engine.apply(ReplaceContent("/App.jsx", "<b>", "<i>"))

        assert result.ok
        assert result.message == "Edited file: /App.jsx"
        assert result.data["replacements"] == 1
        assert tree.read("/App.jsx") == "<i>x</b><b>y</b>"

    def test_replace_nth_and_all(self, engine, tree):
        tree.put("/App.jsx", "a a a")
        engine.apply(ReplaceContent("/App.jsx", "a", "b", occurrence=3))
        assert tree.read("/App.jsx") == "a a b"

        result = engine.apply(ReplaceContent("/App.jsx", "a", "c", replace_all=True))
        assert result.data["replacements"] == 2
        assert tree.read("/App.jsx") == "c c b"

    def test_pattern_not_found_leaves_tree_unchanged(self, engine, tree):
        tree.put("/App.jsx", "hello")
        result = engine.apply(ReplaceContent("/App.jsx", "missing", "x"))

        assert result.status == "error"
        assert result.error_code == "pattern_not_found"
        assert tree.read("/App.jsx") == "hello"
        assert tree.version == 1

    def test_missing_occurrence(self, engine, tree):
        tree.put("/App.jsx", "a")
        with pytest.raises(PatternNotFoundError, match="appears 1 time"):
            engine.execute(ReplaceContent("/App.jsx", "a", "b", occurrence=2))

    def test_replace_in_missing_file(self, engine):
        result = engine.apply(ReplaceContent("/Nope.jsx", "a", "b"))
        assert result.error_code == "not_found"

    def test_insert(self, engine, tree):
        tree.put("/App.jsx", "line1\nline2")
        result = engine.apply(InsertAt("/App.jsx", 2, "inserted"))

        assert result.message == "Inserted text into /App.jsx at line 2"
        assert tree.read("/App.jsx") == "line1\ninserted\nline2"

    def test_undo_is_exact_inverse(self, engine, tree):
        engine.apply(CreateFile("/App.jsx", "original"))
        engine.apply(ReplaceContent("/App.jsx", "original", "edited"))
        engine.apply(InsertAt("/App.jsx", 1, "top"))

        assert engine.apply(UndoLast("/App.jsx")).data["undone"] == "insert_at"
        assert tree.read("/App.jsx") == "edited"
        result = engine.apply(UndoLast("/App.jsx"))
        assert result.message == "Undid last edit to /App.jsx"
        assert tree.read("/App.jsx") == "original"
        engine.apply(UndoLast("/App.jsx"))
        assert not tree.exists("/App.jsx")

        result = engine.apply(UndoLast("/App.jsx"))
        assert result.error_code == "nothing_to_undo"

    def test_failed_edit_records_no_history(self, engine, tree):
        engine.apply(CreateFile("/App.jsx", "x"))
        engine.apply(ReplaceContent("/App.jsx", "missing", "y"))
        assert len(tree.history) == 1


class TestView:
    """Tests for viewing files and directories."""

    def test_view_with_line_numbers(self, engine, tree):
        tree.put("/App.jsx", "a\nb\nc")
        result = engine.apply(ViewFile("/App.jsx"))

        assert result.message == "Read file: /App.jsx"
        assert result.data["content"] == "1| a\n2| b\n3| c"
        assert result.data["total_lines"] == 3

    def test_view_range(self, engine, tree):
        tree.put("/App.jsx", "\n".join(str(i) for i in range(1, 13)))
        result = engine.apply(ViewFile("/App.jsx", view_range=(9, -1)))

        assert result.data["content"] == " 9| 9\n10| 10\n11| 11\n12| 12"
        assert result.data["lines"] == "9-12"

    def test_view_truncates(self, tree):
        engine = EditEngine(tree, EditorConfig(max_view_lines=2))
        tree.put("/App.jsx", "a\nb\nc")
        result = engine.apply(ViewFile("/App.jsx"))

        assert result.data["content"] == "1| a\n2| b"
        assert result.data["truncated"] is True

    def test_view_without_line_numbers(self, tree):
        engine = EditEngine(tree, EditorConfig(include_line_numbers=False))
        tree.put("/App.jsx", "a\nb")
        assert engine.apply(ViewFile("/App.jsx")).data["content"] == "a\nb"

    def test_view_directory(self, engine, tree):
        tree.put("/components/Card.jsx", "abc")
        result = engine.apply(ViewFile("/components"))

        assert result.message == "Listed directory: /components"
        assert "Card.jsx (3 B)" in result.data["content"]

    def test_view_does_not_mutate(self, engine, tree):
        tree.put("/App.jsx", "a")
        engine.apply(ViewFile("/App.jsx"))
        assert tree.version == 1

    def test_view_missing(self, engine):
        with pytest.raises(NotFoundError):
            engine.execute(ViewFile("/missing.jsx"))


class TestStructuralOperations:
    def test_rename_move_copy_delete(self, engine, tree):
        tree.put("/Old.jsx", "x")

        assert engine.apply(Rename("/Old.jsx", "/New.jsx")).message == "Renamed /Old.jsx to /New.jsx"
        assert engine.apply(Move("/New.jsx", "/components/New.jsx")).message == (
            "Moved /New.jsx to /components/New.jsx"
        )
        assert engine.apply(Copy("/components", "/backup")).message == (
            "Copied /components to /backup"
        )
        assert engine.apply(Delete("/components")).message == "Deleted: /components"

        assert tree.read("/backup/New.jsx") == "x"
        assert not tree.exists("/components")

    def test_rename_conflict(self, engine, tree):
        tree.put("/A.jsx", "a")
        tree.put("/B.jsx", "b")
        result = engine.apply(Rename("/A.jsx", "/B.jsx"))

        assert result.error_code == "conflict"
        assert tree.read("/A.jsx") == "a"
        assert tree.read("/B.jsx") == "b"

    def test_delete_missing(self, engine):
        assert engine.apply(Delete("/nope")).error_code == "not_found"

    def test_create_directory_is_idempotent(self, engine, tree):
        assert engine.apply(CreateDirectory("/lib")).message == "Created directory: /lib"
        result = engine.apply(CreateDirectory("/lib"))

        assert result.ok
        assert result.message == "Directory already exists: /lib"
        assert tree.version == 1

    def test_create_directory_over_file(self, engine, tree):
        tree.put("/lib", "x")
        assert engine.apply(CreateDirectory("/lib")).error_code == "invalid_path"


class TestUnsupported:
    def test_unsupported_command(self, engine):
        with pytest.raises(UnsupportedCommandError, match="Use one of"):
            engine.execute(UnsupportedCommand("explode", "/App.jsx"))

    def test_unsupported_operation(self, engine):
        result = engine.apply(UnsupportedOperation("chmod"))
        assert result.error_code == "unsupported_operation"
        assert "chmod" in result.message

    def test_unknown_tool(self, engine, tree):
        result = engine.apply(UnknownTool("web_search"))
        assert result.error_code == "unknown_tool"
        assert tree.version == 0


def assert_tree_invariants(tree):
    """Check the structural invariants of a tree after any edit sequence."""
    nodes = tree.walk()
    paths = [node.path for node in nodes]
    assert len(paths) == len(set(paths))
    assert len(paths) == len(tree)

    known = {"/": tree.root}
    known.update((node.path, node) for node in nodes)
    for node in nodes:
        parent = node.path.rsplit("/", 1)[0] or "/"
        assert parent in known, f"{node.path} has no parent"
        assert known[parent].is_directory
        assert node.path in known[parent].children
    for node in known.values():
        if node.is_file:
            assert node.children == []
        for child in node.children:
            assert child.startswith(node.path.rstrip("/") + "/")
            assert child.count("/") == node.path.rstrip("/").count("/") + 1


class TestOperationSequences:
    """Structural invariants hold after mixed sequences of edits."""

    PATHS = [
        "/App.jsx",
        "/a",
        "/a/X.jsx",
        "/a/b",
        "/a/b/Y.jsx",
        "/c",
        "/c/Z.jsx",
        "/d",
    ]

    def _random_operation(self, rng):
        path = rng.choice(self.PATHS)
        other = rng.choice(self.PATHS)
        return rng.choice(
            [
                CreateFile(path, "x\ny"),
                ReplaceContent(path, "x", "xx"),
                InsertAt(path, rng.randint(1, 4), "z"),
                UndoLast(path),
                Rename(path, other),
                Move(path, other),
                Copy(path, other),
                Delete(path),
                CreateDirectory(path),
            ]
        )

    def test_scripted_sequence(self, engine, tree):
        operations = [
            CreateFile("/a/X.jsx", "x"),
            CreateFile("/a/b/Y.jsx", "y"),
            ReplaceContent("/a/X.jsx", "x", "xx"),
            InsertAt("/a/b/Y.jsx", 1, "import X from '@/a/X';"),
            Move("/a", "/c"),
            CreateDirectory("/a"),
            Copy("/c/b", "/a/b"),
            UndoLast("/c/X.jsx"),
            UndoLast("/c/X.jsx"),
            Rename("/c/b/Y.jsx", "/c/b/Z.jsx"),
            UndoLast("/c/b/Z.jsx"),
            UndoLast("/c/b/Z.jsx"),
            Delete("/a/b"),
        ]
        for operation in operations:
            assert engine.apply(operation).ok, operation
            assert_tree_invariants(tree)

        assert tree.is_dir("/a")
        assert tree.list("/a") == []
        assert tree.list("/c") == []
        assert tree.history == []

    @pytest.mark.parametrize("seed", range(20))
    def test_random_sequences(self, engine, tree, seed):
        rng = random.Random(seed)
        for _ in range(150):
            before = (tree.version, tree.snapshot())
            result = engine.apply(self._random_operation(rng))
            if not result.ok:
                assert (tree.version, tree.snapshot()) == before
            assert_tree_invariants(tree)
