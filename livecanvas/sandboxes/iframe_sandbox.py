"""
Browser iframe realm for the LiveCanvas preview.

Produces a self-contained HTML document meant for an iframe ``srcdoc``. The
document compiles the modules with Babel standalone (unless they were
transpiled already), links them together through blob URLs, resolves
packages through an import map pointing at esm.sh and mounts the entry's
default export with React.

Runtime errors are shown in an overlay and posted to the parent window as
``{"type": "livecanvas:error", "version", "message", "path", "line",
"column"}`` so the host can forward them to
``PreviewRenderer.report_runtime_error``.
"""

from __future__ import annotations

import html
import json
import threading

from livecanvas.errors import BuildCancelled
from livecanvas.sandboxes.base import BaseSandbox
from livecanvas.types import PreviewBundle, RenderOutput

ERROR_MESSAGE_TYPE = "livecanvas:error"
RENDERED_MESSAGE_TYPE = "livecanvas:rendered"

# Needed by every document to mount the entry and by the automatic JSX runtime
BASE_PACKAGES = ("react", "react-dom", "react-dom/client", "react/jsx-runtime")

_DOCUMENT = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8" />
<meta name="viewport" content="width=device-width, initial-scale=1.0" />
<title>__TITLE__</title>
<script type="importmap">__IMPORT_MAP__</script>
__TAILWIND__
__STYLES__
<style>
#livecanvas-error { display: none; position: fixed; inset: 0; padding: 16px; margin: 0;
  background: #fef2f2; color: #991b1b; font: 13px/1.5 ui-monospace, monospace;
  white-space: pre-wrap; overflow: auto; }
</style>
<script src="__BABEL_URL__"></script>
</head>
<body>
<div id="root"></div>
<pre id="livecanvas-error"></pre>
<script id="livecanvas-bundle" type="application/json">__BUNDLE__</script>
<script>
(function () {
  var bundle = JSON.parse(document.getElementById("livecanvas-bundle").textContent);
  var current = null;

  function report(error, path) {
    var message = error && error.message ? error.message : String(error);
    var loc = error && error.loc ? error.loc : null;
    var overlay = document.getElementById("livecanvas-error");
    overlay.textContent = (path ? path + ": " : "") + message;
    overlay.style.display = "block";
    parent.postMessage({
      type: "__ERROR_TYPE__",
      version: bundle.version,
      message: message,
      path: path || null,
      line: loc ? loc.line : null,
      column: loc ? loc.column : null
    }, "*");
  }

  window.addEventListener("error", function (event) {
    report(event.error || event.message, current);
  });
  window.addEventListener("unhandledrejection", function (event) {
    report(event.reason, current);
  });

  var urls = {};
  try {
    bundle.order.forEach(function (id) {
      current = id;
      var code = bundle.modules[id];
      Object.keys(urls).forEach(function (dep) {
        code = code.split(JSON.stringify(dep)).join(JSON.stringify(urls[dep]));
      });
      if (bundle.transform) {
        var presets = [["react", { runtime: "automatic" }]];
        if (/\\.tsx?$/.test(id)) {
          presets.unshift(["typescript", { isTSX: true, allExtensions: true }]);
        }
        code = Babel.transform(code, { filename: id, presets: presets }).code;
      }
      urls[id] = URL.createObjectURL(new Blob([code], { type: "text/javascript" }));
    });
  } catch (error) {
    report(error, current);
    return;
  }

  current = bundle.entry;
  Promise.all([import(urls[bundle.entry]), import("react"), import("react-dom/client")])
    .then(function (mods) {
      var App = mods[0].default;
      if (typeof App !== "function") {
        throw new Error("Entry module " + bundle.entry + " has no default export component");
      }
      mods[2].createRoot(document.getElementById("root")).render(mods[1].createElement(App));
      parent.postMessage({ type: "__RENDERED_TYPE__", version: bundle.version }, "*");
    })
    .catch(function (error) {
      report(error, current);
    });
})();
</script>
</body>
</html>
"""


def _package_root(specifier: str) -> str:
    parts = specifier.split("/")
    if specifier.startswith("@") and len(parts) > 1:
        return "/".join(parts[:2])
    return parts[0]


def _script_safe(text: str) -> str:
    # Keep embedded payloads from closing their <script> or <style> element
    return text.replace("</", "<\\/")


class IframeSandbox(BaseSandbox):
    """Renders a bundle into an HTML document for a browser iframe."""

    def __init__(
        self,
        cdn_url: str = "https://esm.sh",
        babel_url: str = "https://unpkg.com/@babel/standalone/babel.min.js",
        tailwind_url: str | None = "https://cdn.tailwindcss.com",
        title: str = "Preview",
    ):
        """
        Initialize the iframe realm.

        Args:
            cdn_url: ES module CDN used for package imports.
            babel_url: Babel standalone script used for in-browser JSX.
            tailwind_url: Tailwind play CDN script, or None to leave it out.
            title: Document title.
        """
        self.cdn_url = cdn_url.rstrip("/")
        self.babel_url = babel_url
        self.tailwind_url = tailwind_url
        self.title = title

    def initialize(self) -> None:
        pass

    def cleanup(self) -> None:
        pass

    def package_url(self, specifier: str) -> str:
        """CDN URL for a package specifier, sharing one React instance."""
        root = _package_root(specifier)
        url = f"{self.cdn_url}/{specifier}"
        if root == "react":
            return url
        if root == "react-dom":
            return f"{url}?external=react"
        return f"{url}?external=react,react-dom"

    def import_map(self, bundle: PreviewBundle) -> dict:
        specifiers = list(BASE_PACKAGES)
        specifiers.extend(s for s in bundle.external if s not in specifiers)
        return {"imports": {s: self.package_url(s) for s in specifiers}}

    def render_document(self, bundle: PreviewBundle) -> str:
        """Build the srcdoc HTML for a bundle."""
        payload = {
            "version": bundle.version,
            "entry": bundle.entry,
            "order": list(bundle.modules),
            "modules": bundle.modules,
            "transform": bundle.needs_transform,
        }
        styles = "\n".join(
            f'<style data-path="{html.escape(path)}">{_script_safe(css)}</style>'
            for path, css in bundle.styles.items()
        )
        tailwind = (
            f'<script src="{html.escape(self.tailwind_url)}"></script>'
            if self.tailwind_url
            else ""
        )
        replacements = {
            "__TITLE__": html.escape(self.title),
            "__IMPORT_MAP__": _script_safe(json.dumps(self.import_map(bundle))),
            "__TAILWIND__": tailwind,
            "__STYLES__": styles,
            "__BABEL_URL__": html.escape(self.babel_url),
            "__ERROR_TYPE__": ERROR_MESSAGE_TYPE,
            "__RENDERED_TYPE__": RENDERED_MESSAGE_TYPE,
        }
        document = _DOCUMENT
        for placeholder, value in replacements.items():
            document = document.replace(placeholder, value)
        # Inserted last so module source is never scanned for placeholders
        return document.replace("__BUNDLE__", _script_safe(json.dumps(payload, ensure_ascii=False)))

    def execute(
        self,
        bundle: PreviewBundle,
        cancel_event: threading.Event | None = None,
    ) -> RenderOutput:
        if cancel_event is not None and cancel_event.is_set():
            raise BuildCancelled(f"Build of version {bundle.version} was cancelled")
        return RenderOutput(
            version=bundle.version,
            entry=bundle.entry,
            html=self.render_document(bundle),
        )
