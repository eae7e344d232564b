import threading

import pytest

from bridge import HostBridge
from config import Config
from errors import CloseOutcome, HostActionFailed
from main import create_app
from surface import PrintSurfaceController

ACK = "host.acknowledge("


class FastConfig(Config):
    SURFACE_READY_TIMEOUT = 0.5
    SURFACE_CLOSE_TIMEOUT = 0.5
    PRINT_ACK_TIMEOUT = 0.5


class FakeHostBridge(HostBridge):
    """In-memory host: surfaces are dict entries, scripts are recorded."""

    def __init__(self):
        self.controller = None
        self.auto_ready = True
        self.auto_ack = True
        self.confirm_close = True
        self.fail_create = False
        self.fail_evaluate_on = None
        self.surfaces = {}
        self.created = []
        self.scripts = []
        self.closed = []
        self.opened_paths = []
        self.open_error = None
        self.max_live = 0
        self.printed = threading.Event()
        self._lock = threading.Lock()

    def create_surface(self, handle, options):
        if self.fail_create:
            raise HostActionFailed("window creation refused")
        with self._lock:
            self.surfaces[handle.token] = handle
            self.created.append((handle, options))
            self.max_live = max(self.max_live, len(self.surfaces))
        if self.auto_ready:
            handle.mark_ready()

    def evaluate(self, handle, script):
        if handle.token not in self.surfaces:
            raise HostActionFailed("surface is gone")
        if self.fail_evaluate_on and self.fail_evaluate_on in script:
            raise HostActionFailed("script evaluation failed")
        self.scripts.append((handle.token, script))
        if ACK in script:
            self.printed.set()
            if self.auto_ack:
                self.controller.close_print_surface(handle.token)

    def close(self, handle):
        with self._lock:
            if self.surfaces.pop(handle.token, None) is None:
                return CloseOutcome.ALREADY_GONE
            self.closed.append(handle.token)
        if self.confirm_close:
            handle.mark_closed()
        return CloseOutcome.CLOSED

    def acknowledge_script(self, handle):
        return f"{ACK}\"{handle.token}\");"

    def open_path(self, path):
        if self.open_error:
            raise HostActionFailed(self.open_error)
        self.opened_paths.append(path)

    def injected(self, token=None):
        """Return the injection scripts, optionally for one surface."""
        return [s for t, s in self.scripts if "document.write" in s and (token is None or t == token)]


@pytest.fixture
def bridge():
    return FakeHostBridge()


@pytest.fixture
def controller(bridge):
    controller = PrintSurfaceController(bridge, FastConfig)
    bridge.controller = controller
    return controller


@pytest.fixture
def app(bridge):
    app = create_app(bridge=bridge, config=FastConfig)
    bridge.controller = app.extensions["print_surface"]
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def sample_payload():
    return {
        "sale": {"id": 7, "customer_name": "Jane", "total": "1000", "amount_received": 1200},
        "items": [{"product_name": "Paracetamol", "quantity": 2, "price": "150"}],
        "pharmacy": {"pharmacy_name": "Acme"},
    }
