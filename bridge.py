# bridge.py
"""
Host bridges for the print surface.

A host creates the surface, evaluates scripts inside it and closes it. It
reports back through the handle: ``mark_ready()`` once the surface can take
content and ``mark_closed()`` once it is gone.
"""

import logging
import os
import platform
import subprocess
import threading
import webbrowser
from abc import ABC, abstractmethod
from collections import deque
from typing import Callable, Deque, Dict

from flask import Blueprint, abort, jsonify, render_template_string

from errors import CloseOutcome, HostActionFailed

logger = logging.getLogger(__name__)


def open_path(path: str) -> None:
    """Hand a file or folder path to the operating system's opener."""
    try:
        if platform.system() == "Windows":
            os.startfile(path)
        elif platform.system() == "Darwin":
            subprocess.run(["open", path], check=True)
        else:
            subprocess.run(["xdg-open", path], check=True)
    except (OSError, subprocess.CalledProcessError) as exc:
        raise HostActionFailed(f"could not open {path}: {exc}") from exc


class HostBridge(ABC):
    """
    Interface for application shells able to host a print surface.

    Every method raises HostActionFailed when the host cannot do what is asked.
    """

    @abstractmethod
    def create_surface(self, handle, options) -> None:
        """
        Create the surface for ``handle`` pointing at a blank target.

        Args:
            handle: SurfaceHandle to signal ready/closed on
            options: SurfaceOptions (title, size, resizable, initial url)
        """

    @abstractmethod
    def evaluate(self, handle, script: str) -> None:
        """Run ``script`` inside the surface, in order of submission."""

    @abstractmethod
    def close(self, handle) -> CloseOutcome:
        """
        Close the surface.

        Returns:
            CloseOutcome.ALREADY_GONE when the host no longer knows the surface
        """

    @abstractmethod
    def acknowledge_script(self, handle) -> str:
        """Script the surface runs after printing to ask the host to close it.

        The script must identify ``handle`` by its token so the close is
        applied to this surface only.
        """

    def open_path(self, path: str) -> None:
        open_path(path)


SHELL_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>{{ options.title }}</title>
<style>
html, body { margin: 0; height: 100%; }
iframe { border: 0; width: 100%; height: 100%; }
</style>
</head>
<body>
<iframe id="surface" src="{{ options.url }}"></iframe>
<script>
const base = "{{ base }}";
const frame = document.getElementById("surface");

function run(script) {
  new Function("document", "window", script)(frame.contentDocument, frame.contentWindow);
}

async function poll() {
  const reply = await (await fetch(base + "/next")).json();
  if (reply.close) {
    window.close();
    return;
  }
  for (const script of reply.scripts) {
    run(script);
  }
  setTimeout(poll, 200);
}

window.addEventListener("load", () => {
  try { window.resizeTo({{ options.width }}, {{ options.height }}); } catch (e) {}
  fetch(base + "/ready", { method: "POST" }).then(poll);
});
window.addEventListener("pagehide", () => navigator.sendBeacon(base + "/closed"));
{% if not options.resizable %}
window.addEventListener("resize", () => {
  try { window.resizeTo({{ options.width }}, {{ options.height }}); } catch (e) {}
});
{% endif %}
</script>
</body>
</html>
"""


class _Page:

    def __init__(self, handle, options):
        self.handle = handle
        self.options = options
        self.scripts: Deque[str] = deque()


class BrowserHostBridge(HostBridge):
    """Hosts the surface as a shell page opened in the system web browser.

    The shell page is served by this service's own Flask app through
    ``blueprint``; it keeps the receipt inside a blank iframe and pulls the
    scripts queued by ``evaluate``.

    Closing retires the page on the server side only. Browsers ignore
    ``window.close()`` in a tab they did not open from script, so the tab
    opened by ``webbrowser`` stays visible (showing the printed receipt)
    until the user closes it; it no longer receives scripts.
    """

    def __init__(self, opener: Callable[[str], bool] = webbrowser.open_new, base_url: str = ""):
        self._opener = opener
        self._base_url = base_url.rstrip("/")
        self._lock = threading.Lock()
        self._pages: Dict[str, _Page] = {}
        self.blueprint = self._build_blueprint()

    def create_surface(self, handle, options) -> None:
        with self._lock:
            self._pages[handle.token] = _Page(handle, options)
        url = f"{self._base_url}/surface/{handle.token}"
        try:
            opened = self._opener(url)
        except webbrowser.Error as exc:
            opened = False
            logger.error("Browser failed to open %s: %s", url, exc)
        if not opened:
            self._forget(handle.token)
            raise HostActionFailed("no web browser available to show the print surface")
        logger.debug("Opened print surface at %s", url)

    def evaluate(self, handle, script: str) -> None:
        with self._lock:
            page = self._pages.get(handle.token)
            if page is None:
                raise HostActionFailed("print surface is gone")
            page.scripts.append(script)

    def close(self, handle) -> CloseOutcome:
        if self._forget(handle.token) is None:
            return CloseOutcome.ALREADY_GONE
        # Once retired here the shell page can no longer reach the surface.
        handle.mark_closed()
        return CloseOutcome.CLOSED

    def acknowledge_script(self, handle) -> str:
        return (
            f'fetch("{self._base_url}/print/close", {{ method: "POST", '
            f'headers: {{ "Content-Type": "application/json" }}, '
            f'body: JSON.stringify({{ surface: "{handle.token}" }}) }});'
        )

    def _forget(self, token: str):
        with self._lock:
            return self._pages.pop(token, None)

    def _page(self, token: str) -> _Page:
        with self._lock:
            page = self._pages.get(token)
        if page is None:
            abort(404)
        return page

    def _build_blueprint(self) -> Blueprint:
        bp = Blueprint("surface", __name__)

        @bp.route("/surface/<token>", methods=["GET"])
        def shell(token):
            page = self._page(token)
            return render_template_string(
                SHELL_TEMPLATE,
                options=page.options,
                base=f"{self._base_url}/surface/{token}",
            )

        @bp.route("/surface/<token>/ready", methods=["POST"])
        def ready(token):
            self._page(token).handle.mark_ready()
            return "", 204

        @bp.route("/surface/<token>/next", methods=["GET"])
        def next_scripts(token):
            with self._lock:
                page = self._pages.get(token)
                if page is None:
                    return jsonify({"close": True, "scripts": []})
                scripts = list(page.scripts)
                page.scripts.clear()
            return jsonify({"close": False, "scripts": scripts})

        @bp.route("/surface/<token>/closed", methods=["POST"])
        def closed(token):
            page = self._forget(token)
            if page is not None:
                logger.info("Print surface %s closed by the user", token[:8])
                page.handle.mark_closed()
            return "", 204

        return bp
