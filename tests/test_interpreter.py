"""Tests for tool-call display messages and argument interpretation."""

import pytest

from livecanvas.errors import InvalidArgumentError, MissingArgumentError
from livecanvas.interpreter import (
    ToolCallInterpreter,
    generate_tool_message,
    parse_partial_arguments,
)
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


class TestGenerateToolMessage:
    """Display text shown while a tool call streams and after it completes."""

    @pytest.mark.parametrize(
        "args,expected",
        [
            ({"command": "create", "path": "/src/components/Button.tsx"}, "Creating file Button.tsx"),
            ({"command": "str_replace", "path": "/src/App.jsx"}, "Editing App.jsx"),
            ({"command": "view", "path": "/src/utils/helper.ts"}, "Viewing helper.ts"),
            ({"command": "insert", "path": "/src/index.js"}, "Adding content to index.js"),
            ({"command": "undo_edit", "path": "/src/component.tsx"}, "Undoing changes in component.tsx"),
            ({"command": "unknown", "path": "/src/test.js"}, "Modifying test.js"),
            ({"command": "create"}, "Creating file file"),
            ({}, "Modifying file"),
            (
                {"command": "create", "path": "/very/deep/nested/path/component.tsx"},
                "Creating file component.tsx",
            ),
        ],
    )
    def test_editor_messages(self, args, expected):
        assert generate_tool_message("str_replace_editor", args) == expected

    @pytest.mark.parametrize(
        "args,expected",
        [
            (
                {
                    "operation": "rename",
                    "old_path": "/src/OldComponent.tsx",
                    "new_path": "/src/NewComponent.tsx",
                },
                "Renaming OldComponent.tsx to NewComponent.tsx",
            ),
            ({"operation": "delete", "path": "/src/unused.js"}, "Deleting unused.js"),
            ({"operation": "create_directory", "path": "/src/components"}, "Creating directory components"),
            ({"operation": "move", "old_path": "/src/temp.js"}, "Moving temp.js"),
            ({"operation": "copy", "old_path": "/src/template.tsx"}, "Copying template.tsx"),
            ({"operation": "unknown"}, "Managing files"),
            ({"operation": "rename"}, "Renaming file to file"),
        ],
    )
    def test_file_manager_messages(self, args, expected):
        assert generate_tool_message("file_manager", args) == expected

    def test_unknown_tool_name(self):
        assert generate_tool_message("custom_tool_name", {}) == "custom tool name"

    @pytest.mark.parametrize("args", [None, "garbage", 42, ["path"], {"path": 7}])
    def test_never_raises(self, args):
        assert generate_tool_message("str_replace_editor", args) == "Modifying file"

    def test_missing_tool_name(self):
        assert generate_tool_message(None, None) == ""


class TestParsePartialArguments:
    def test_complete_json(self):
        assert parse_partial_arguments('{"command": "create", "path": "/App.jsx"}') == {
            "command": "create",
            "path": "/App.jsx",
        }

    def test_prefix_keeps_complete_fields_only(self):
        buffer = '{"command": "create", "path": "/components/Card.jsx", "file_text": "export def'
        assert parse_partial_arguments(buffer) == {
            "command": "create",
            "path": "/components/Card.jsx",
        }

    def test_escaped_strings(self):
        buffer = '{"path": "/a \\"b\\".jsx", "new_str": "x'
        assert parse_partial_arguments(buffer) == {"path": '/a "b".jsx'}

    def test_numbers_and_bools(self):
        buffer = '{"command": "insert", "insert_line": 4, "replace_all": true, "insert_text": "'
        parsed = parse_partial_arguments(buffer)
        assert parsed["insert_line"] == 4
        assert parsed["replace_all"] is True

    def test_unterminated_number_is_skipped(self):
        assert "insert_line" not in parse_partial_arguments('{"insert_line": 1')

    @pytest.mark.parametrize("buffer", [None, "", "{", '{"pa'])
    def test_empty(self, buffer):
        assert parse_partial_arguments(buffer) == {}


class TestInterpretEditor:
    """Normalizing completed str_replace_editor calls."""

    @pytest.fixture
    def interpreter(self):
        return ToolCallInterpreter()

    def test_create(self, interpreter):
        op = interpreter.interpret(
            "str_replace_editor", {"command": "create", "path": "App.jsx", "file_text": "x"}
        )
        assert op == CreateFile(path="/App.jsx", content="x")

    def test_create_without_text_is_empty_file(self, interpreter):
        op = interpreter.interpret("str_replace_editor", {"command": "create", "path": "/a.js"})
        assert op == CreateFile(path="/a.js", content="")

    def test_str_replace(self, interpreter):
        op = interpreter.interpret(
            "str_replace_editor",
            {"command": "str_replace", "path": "/App.jsx", "old_str": "a", "new_str": "b"},
        )
        assert op == ReplaceContent(path="/App.jsx", match="a", replacement="b")

    def test_str_replace_missing_new_str_deletes(self, interpreter):
        op = interpreter.interpret(
            "str_replace_editor", {"command": "str_replace", "path": "/App.jsx", "old_str": "a"}
        )
        assert op.replacement == ""

    def test_str_replace_requires_old_str(self, interpreter):
        with pytest.raises(MissingArgumentError) as exc:
            interpreter.interpret(
                "str_replace_editor", {"command": "str_replace", "path": "/App.jsx", "old_str": ""}
            )
        assert exc.value.argument == "old_str"
        assert exc.value.code == "missing_argument"

    def test_str_replace_bad_occurrence(self, interpreter):
        with pytest.raises(InvalidArgumentError):
            interpreter.interpret(
                "str_replace_editor",
                {"command": "str_replace", "path": "/App.jsx", "old_str": "a", "occurrence": 0},
            )

    def test_view(self, interpreter):
        assert interpreter.interpret(
            "str_replace_editor", {"command": "view", "path": "/App.jsx", "view_range": [2, 5]}
        ) == ViewFile(path="/App.jsx", view_range=(2, 5))

    def test_view_range_must_be_pair(self, interpreter):
        with pytest.raises(InvalidArgumentError) as exc:
            interpreter.interpret(
                "str_replace_editor", {"command": "view", "path": "/App.jsx", "view_range": [1]}
            )
        assert exc.value.argument == "view_range"

    def test_insert_line_is_line_before(self, interpreter):
        op = interpreter.interpret(
            "str_replace_editor",
            {"command": "insert", "path": "/App.jsx", "insert_line": 0, "insert_text": "x"},
        )
        assert op == InsertAt(path="/App.jsx", line=1, text="x")

    def test_insert_falls_back_to_new_str(self, interpreter):
        op = interpreter.interpret(
            "str_replace_editor",
            {"command": "insert", "path": "/App.jsx", "insert_line": 3, "new_str": "y"},
        )
        assert op == InsertAt(path="/App.jsx", line=4, text="y")

    @pytest.mark.parametrize(
        "args,argument",
        [
            ({"command": "insert", "path": "/App.jsx", "insert_text": "x"}, "insert_line"),
            ({"command": "insert", "path": "/App.jsx", "insert_line": 1}, "insert_text"),
        ],
    )
    def test_insert_missing_arguments(self, interpreter, args, argument):
        with pytest.raises(MissingArgumentError) as exc:
            interpreter.interpret("str_replace_editor", args)
        assert exc.value.argument == argument

    def test_insert_negative_line(self, interpreter):
        with pytest.raises(InvalidArgumentError):
            interpreter.interpret(
                "str_replace_editor",
                {"command": "insert", "path": "/App.jsx", "insert_line": -1, "insert_text": "x"},
            )

    def test_undo_edit(self, interpreter):
        assert interpreter.interpret(
            "str_replace_editor", {"command": "undo_edit", "path": "/App.jsx"}
        ) == UndoLast(path="/App.jsx")

    def test_missing_command(self, interpreter):
        with pytest.raises(MissingArgumentError) as exc:
            interpreter.interpret("str_replace_editor", {"path": "/App.jsx"})
        assert exc.value.argument == "command"

    @pytest.mark.parametrize("args", [{"command": "create"}, {"command": "create", "path": "  "}])
    def test_missing_path(self, interpreter, args):
        with pytest.raises(MissingArgumentError) as exc:
            interpreter.interpret("str_replace_editor", args)
        assert exc.value.argument == "path"

    def test_wrong_type(self, interpreter):
        with pytest.raises(InvalidArgumentError) as exc:
            interpreter.interpret(
                "str_replace_editor", {"command": "view", "path": "/App.jsx", "view_range": "all"}
            )
        assert exc.value.argument == "view_range"

    def test_unsupported_command(self, interpreter):
        op = interpreter.interpret("str_replace_editor", {"command": "explode", "path": "x.js"})
        assert op == UnsupportedCommand(command="explode", path="/x.js")

    def test_extra_fields_ignored(self, interpreter):
        op = interpreter.interpret(
            "str_replace_editor",
            {"command": "undo_edit", "path": "/App.jsx", "reason": "oops"},
        )
        assert op == UndoLast(path="/App.jsx")

    def test_arguments_must_be_object(self, interpreter):
        with pytest.raises(InvalidArgumentError):
            interpreter.interpret("str_replace_editor", ["create"])


class TestInterpretFileManager:
    """Normalizing completed file_manager calls."""

    @pytest.fixture
    def interpreter(self):
        return ToolCallInterpreter()

    def test_rename_move_copy(self, interpreter):
        args = {"old_path": "/a.jsx", "new_path": "/b/a.jsx"}
        assert interpreter.interpret("file_manager", {"operation": "rename", **args}) == Rename(
            "/a.jsx", "/b/a.jsx"
        )
        assert interpreter.interpret("file_manager", {"operation": "move", **args}) == Move(
            "/a.jsx", "/b/a.jsx"
        )
        assert interpreter.interpret("file_manager", {"operation": "copy", **args}) == Copy(
            "/a.jsx", "/b/a.jsx"
        )

    def test_source_falls_back_to_path(self, interpreter):
        op = interpreter.interpret(
            "file_manager", {"operation": "move", "path": "/a.jsx", "new_path": "/lib/a.jsx"}
        )
        assert op == Move("/a.jsx", "/lib/a.jsx")

    def test_delete_and_create_directory(self, interpreter):
        assert interpreter.interpret("file_manager", {"operation": "delete", "path": "/x"}) == Delete("/x")
        assert interpreter.interpret(
            "file_manager", {"operation": "create_directory", "path": "/components/"}
        ) == CreateDirectory("/components")

    @pytest.mark.parametrize(
        "args,argument",
        [
            ({"operation": "rename", "new_path": "/b.jsx"}, "old_path"),
            ({"operation": "rename", "old_path": "/a.jsx"}, "new_path"),
            ({"operation": "delete"}, "path"),
            ({}, "operation"),
        ],
    )
    def test_missing_arguments(self, interpreter, args, argument):
        with pytest.raises(MissingArgumentError) as exc:
            interpreter.interpret("file_manager", args)
        assert exc.value.argument == argument

    def test_unsupported_operation(self, interpreter):
        assert interpreter.interpret("file_manager", {"operation": "chmod"}) == UnsupportedOperation(
            operation="chmod"
        )

    def test_unknown_tool(self, interpreter):
        assert interpreter.interpret("web_search", {"q": "x"}) == UnknownTool(tool_name="web_search")
