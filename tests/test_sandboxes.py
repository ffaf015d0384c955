"""Tests for the iframe and subprocess preview realms."""

import json
import os
import re
import sys
import threading

import pytest

from livecanvas.errors import BuildCancelled, RuntimeFailure
from livecanvas.sandboxes.base import link_modules
from livecanvas.sandboxes.iframe_sandbox import ERROR_MESSAGE_TYPE, IframeSandbox
from livecanvas.sandboxes.subprocess_sandbox import SubprocessSandbox
from livecanvas.types import PreviewBundle


@pytest.fixture
def bundle():
    return PreviewBundle(
        version=7,
        entry="/App.jsx",
        modules={
            "/components/Card.jsx": "export default function Card() { return null; }\n",
            "/App.jsx": 'import Card from "/components/Card.jsx";\nexport default Card;\n',
        },
        styles={"/index.css": "body { margin: 0; }"},
        external=["lucide-react", "@radix-ui/react-dialog"],
    )


def test_link_modules():
    code = 'import A from "/A.jsx";\nimport B from "/B.jsx";\nconst s = "/A.jsx is here";'
    linked = link_modules(code, {"/A.jsx": "./A.jsx.mjs"})
    assert 'import A from "./A.jsx.mjs";' in linked
    assert 'import B from "/B.jsx";' in linked
    assert '"/A.jsx is here"' in linked


class TestIframeSandbox:
    """Tests for the srcdoc document realm."""

    @pytest.fixture
    def sandbox(self):
        return IframeSandbox(cdn_url="https://esm.sh/", tailwind_url=None)

    def test_package_urls_share_react(self, sandbox):
        assert sandbox.package_url("react") == "https://esm.sh/react"
        assert sandbox.package_url("react-dom/client") == "https://esm.sh/react-dom/client?external=react"
        assert sandbox.package_url("lucide-react") == "https://esm.sh/lucide-react?external=react,react-dom"

    def test_import_map(self, sandbox, bundle):
        imports = sandbox.import_map(bundle)["imports"]
        assert list(imports)[:4] == ["react", "react-dom", "react-dom/client", "react/jsx-runtime"]
        assert "lucide-react" in imports
        assert imports["@radix-ui/react-dialog"].startswith("https://esm.sh/@radix-ui/react-dialog")

    def test_document(self, sandbox, bundle):
        output = sandbox.run(bundle)

        assert output.version == 7
        assert output.entry == "/App.jsx"
        document = output.html
        assert document.startswith("<!DOCTYPE html>")
        assert '<style data-path="/index.css">body { margin: 0; }</style>' in document
        assert ERROR_MESSAGE_TYPE in document
        assert "cdn.tailwindcss.com" not in document
        assert "__BUNDLE__" not in document

    def test_embedded_bundle(self, sandbox, bundle):
        document = sandbox.render_document(bundle)
        match = re.search(
            r'<script id="livecanvas-bundle" type="application/json">(.*?)</script>', document, re.DOTALL
        )
        payload = json.loads(match.group(1))

        assert payload["version"] == 7
        assert payload["entry"] == "/App.jsx"
        assert payload["order"] == ["/components/Card.jsx", "/App.jsx"]
        assert payload["transform"] is True

    def test_script_close_is_escaped(self, sandbox):
        bundle = PreviewBundle(
            version=1,
            entry="/App.jsx",
            modules={"/App.jsx": 'export default () => "</script><script>alert(1)</script>";'},
        )
        document = sandbox.render_document(bundle)
        assert "</script><script>alert(1)" not in document

    def test_cancelled(self, sandbox, bundle):
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(BuildCancelled):
            sandbox.execute(bundle, cancel)


class TestSubprocessSandbox:
    """Tests for the TemporaryDirectory + subprocess realm."""

    def test_materialize_links_relative_modules(self, bundle):
        sandbox = SubprocessSandbox()
        sandbox.initialize()
        try:
            entry_file = sandbox.materialize(bundle)
            root = sandbox.root_path

            assert entry_file == os.path.join(root, "App.jsx.mjs")
            with open(entry_file, encoding="utf-8") as f:
                assert 'import Card from "./components/Card.jsx.mjs";' in f.read()
            assert os.path.exists(os.path.join(root, "components", "Card.jsx.mjs"))
            assert os.path.exists(os.path.join(root, "index.css"))
        finally:
            sandbox.cleanup()
        assert not os.path.exists(root)

    def test_link_targets_from_subdirectory(self):
        sandbox = SubprocessSandbox()
        targets = sandbox._link_targets("/components/Card.jsx", ["/App.jsx", "/components/ui/Button.jsx"])
        assert targets == {
            "/App.jsx": "../App.jsx.mjs",
            "/components/ui/Button.jsx": "./ui/Button.jsx.mjs",
        }

    def test_escaping_path_rejected(self):
        sandbox = SubprocessSandbox()
        sandbox.initialize()
        try:
            with pytest.raises(ValueError):
                sandbox._full_path("/../../etc/passwd")
        finally:
            sandbox.cleanup()

    def test_root_path_requires_initialize(self):
        with pytest.raises(RuntimeError):
            SubprocessSandbox().root_path

    def test_successful_run(self, bundle):
        sandbox = SubprocessSandbox(
            command=[sys.executable, "-c", "import os, sys; print(os.path.basename(sys.argv[1]))", "{entry}"]
        )
        output = sandbox.run(bundle)

        assert output.version == 7
        assert output.stdout.strip() == "App.jsx.mjs"
        assert sandbox._temp_dir is None

    def test_failure_maps_frame_to_module(self, bundle):
        script = (
            "import sys; "
            "sys.stderr.write('file://{entry}:3\\n  boom\\n\\nTypeError: Card is not a function\\n"
            "    at App (file://{entry}:3:14)\\n'); "
            "sys.exit(1)"
        )
        sandbox = SubprocessSandbox(command=[sys.executable, "-c", script])

        with pytest.raises(RuntimeFailure) as exc:
            sandbox.run(bundle)

        assert exc.value.message == "TypeError: Card is not a function"
        assert exc.value.path == "/App.jsx"
        assert exc.value.line == 3

    def test_failure_without_frame(self, bundle):
        sandbox = SubprocessSandbox(command=[sys.executable, "-c", "import sys; sys.exit(3)"])
        with pytest.raises(RuntimeFailure) as exc:
            sandbox.run(bundle)
        assert exc.value.message == "Process exited with code 3"
        assert exc.value.path == "/App.jsx"

    def test_timeout(self, bundle):
        sandbox = SubprocessSandbox(
            command=[sys.executable, "-c", "import time; time.sleep(10)"], timeout=0.3
        )
        with pytest.raises(RuntimeFailure, match="timed out"):
            sandbox.run(bundle)

    def test_cancel_kills_process(self, bundle):
        sandbox = SubprocessSandbox(command=[sys.executable, "-c", "import time; time.sleep(10)"])
        cancel = threading.Event()
        timer = threading.Timer(0.2, cancel.set)
        timer.start()
        try:
            with pytest.raises(BuildCancelled):
                sandbox.run(bundle, cancel)
        finally:
            timer.cancel()

    def test_missing_command(self, bundle):
        sandbox = SubprocessSandbox(command=["livecanvas-no-such-runtime"])
        with pytest.raises(RuntimeFailure, match="not found"):
            sandbox.run(bundle)
