# surface.py
"""Lifecycle of the single print surface.

One surface exists at a time, registered under a well-known label. A print
request reclaims any surface still open, creates a fresh one, waits for it to
report ready, injects the receipt, triggers the print and then waits for the
surface to acknowledge before closing it.
"""

import logging
import threading
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from config import Config
from errors import (
    CloseOutcome,
    ContentInjectionFailed,
    HostActionFailed,
    NoActiveSurface,
    PrintError,
    SurfaceCreationFailed,
)
from escaping import Context, escape

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "Receipt printed successfully"

INJECT_SCRIPT = "document.open();\ndocument.write(`{literal}`);\ndocument.close();\n"

PRINT_SCRIPT = "window.print();\n{acknowledge}\n"


class SurfaceState(Enum):
    IDLE = "idle"
    RECLAIMING = "reclaiming"
    CREATING = "creating"
    INJECTING = "injecting"
    PRINTING = "printing"
    AUTO_CLOSING = "auto_closing"
    CLOSED = "closed"
    FAILED = "failed"


@dataclass(frozen=True)
class SurfaceOptions:
    title: str
    width: int
    height: int
    resizable: bool = False
    url: str = "about:blank"


class SurfaceHandle:
    """A single rendering surface and the signals its host reports back."""

    def __init__(self, label: str):
        self.label = label
        self.token = uuid.uuid4().hex
        self.state = SurfaceState.IDLE
        self._ready = threading.Event()
        self._acknowledged = threading.Event()
        self._closed = threading.Event()
        self._closing = threading.Lock()
        self._close_requested = False

    def __repr__(self):
        return f"<SurfaceHandle {self.label} {self.token[:8]} {self.state.value}>"

    # Signals raised by the host
    def mark_ready(self) -> None:
        self._ready.set()

    def mark_closed(self) -> None:
        # A closed surface will never acknowledge on its own.
        self._acknowledged.set()
        self._closed.set()

    def acknowledge(self) -> None:
        self._acknowledged.set()

    # Waits used by the controller
    def wait_ready(self, timeout: float) -> bool:
        return self._ready.wait(timeout)

    def wait_acknowledged(self, timeout: float) -> bool:
        return self._acknowledged.wait(timeout)

    def wait_closed(self, timeout: float) -> bool:
        return self._closed.wait(timeout)

    @property
    def is_closed(self) -> bool:
        return self._closed.is_set()

    def claim_close(self) -> bool:
        """Return True for the one caller that should ask the host to close."""
        with self._closing:
            if self._close_requested:
                return False
            self._close_requested = True
            return True

    def release_close(self) -> None:
        with self._closing:
            self._close_requested = False


class SurfaceRegistry:
    """Live surfaces keyed by label; at most one per label."""

    def __init__(self):
        self._lock = threading.Lock()
        self._surfaces: Dict[str, SurfaceHandle] = {}

    def get(self, label: str) -> Optional[SurfaceHandle]:
        with self._lock:
            return self._surfaces.get(label)

    def find(self, token: str) -> Optional[SurfaceHandle]:
        with self._lock:
            for handle in self._surfaces.values():
                if handle.token == token:
                    return handle
        return None

    def add(self, handle: SurfaceHandle) -> None:
        with self._lock:
            current = self._surfaces.get(handle.label)
            if current is not None:
                raise SurfaceCreationFailed(f"print surface {handle.label!r} is already open")
            self._surfaces[handle.label] = handle

    def remove(self, handle: SurfaceHandle) -> None:
        with self._lock:
            if self._surfaces.get(handle.label) is handle:
                del self._surfaces[handle.label]

    def __len__(self):
        with self._lock:
            return len(self._surfaces)


class PrintSurfaceController:

    def __init__(self, bridge, config=Config, registry: Optional[SurfaceRegistry] = None):
        self._bridge = bridge
        self._registry = registry if registry is not None else SurfaceRegistry()
        self._sequence = threading.Lock()
        self.label = config.SURFACE_LABEL
        self.options = SurfaceOptions(
            title=config.SURFACE_TITLE,
            width=config.SURFACE_WIDTH,
            height=config.SURFACE_HEIGHT,
        )
        self.ready_timeout = config.SURFACE_READY_TIMEOUT
        self.close_timeout = config.SURFACE_CLOSE_TIMEOUT
        self.print_ack_timeout = config.PRINT_ACK_TIMEOUT

    @property
    def registry(self) -> SurfaceRegistry:
        return self._registry

    @property
    def active_surface(self) -> Optional[SurfaceHandle]:
        return self._registry.get(self.label)

    def print_document(self, document: str) -> str:
        with self._sequence:
            self._reclaim()
            handle = self._create()
            self._inject(handle, document)
            self._trigger_print(handle)

        if not handle.wait_acknowledged(self.print_ack_timeout):
            logger.warning("No print acknowledgment from %r after %ss, closing it", handle, self.print_ack_timeout)
        self._transition(handle, SurfaceState.AUTO_CLOSING)
        self._close(handle)
        self._transition(handle, SurfaceState.CLOSED)
        logger.info("Print surface %r closed", handle)
        return SUCCESS_MESSAGE

    def close_print_surface(self, token: Optional[str] = None) -> None:
        """Close the active surface.

        A surface acknowledging its own print passes its token, so a late
        acknowledgment from a reclaimed surface never closes its successor.
        Without a token this is a manual teardown of whatever is open.
        """
        if token is None:
            handle = self._registry.get(self.label)
        else:
            handle = self._registry.find(token)
        if handle is None:
            raise NoActiveSurface()
        logger.debug("Close requested for %r", handle)
        self._close(handle)

    def _transition(self, handle: SurfaceHandle, state: SurfaceState) -> None:
        logger.debug("%r -> %s", handle, state.value)
        handle.state = state

    def _reclaim(self) -> None:
        stale = self._registry.get(self.label)
        if stale is None:
            return
        logger.info("Reclaiming print surface %r still open", stale)
        self._transition(stale, SurfaceState.RECLAIMING)
        self._close(stale)

    def _create(self) -> SurfaceHandle:
        handle = SurfaceHandle(self.label)
        self._registry.add(handle)
        self._transition(handle, SurfaceState.CREATING)
        try:
            self._bridge.create_surface(handle, self.options)
        except PrintError as exc:
            self._fail(handle)
            raise SurfaceCreationFailed(f"could not create print surface: {exc.message}") from exc
        if not handle.wait_ready(self.ready_timeout):
            self._fail(handle)
            raise SurfaceCreationFailed(f"print surface not ready after {self.ready_timeout}s")
        return handle

    def _inject(self, handle: SurfaceHandle, document: str) -> None:
        self._transition(handle, SurfaceState.INJECTING)
        script = INJECT_SCRIPT.format(literal=escape(document, Context.SCRIPT_LITERAL))
        try:
            self._bridge.evaluate(handle, script)
        except PrintError as exc:
            self._fail(handle)
            raise ContentInjectionFailed(f"could not inject receipt: {exc.message}") from exc

    def _trigger_print(self, handle: SurfaceHandle) -> None:
        self._transition(handle, SurfaceState.PRINTING)
        script = PRINT_SCRIPT.format(acknowledge=self._bridge.acknowledge_script(handle))
        try:
            self._bridge.evaluate(handle, script)
        except PrintError as exc:
            self._fail(handle)
            raise ContentInjectionFailed(f"could not trigger print: {exc.message}") from exc
        logger.info("Print triggered on %r", handle)

    def _close(self, handle: SurfaceHandle) -> None:
        """Close a surface and wait until the host confirms it is gone.

        A surface whose close is not confirmed stays registered, so the next
        print request reclaims it again.
        """
        handle.acknowledge()
        if handle.claim_close():
            try:
                outcome = self._bridge.close(handle)
            except PrintError:
                handle.release_close()
                raise
            if outcome is CloseOutcome.ALREADY_GONE:
                logger.debug("%r was already gone", handle)
                handle.mark_closed()
        if not handle.wait_closed(self.close_timeout):
            handle.release_close()
            raise HostActionFailed(f"print surface did not close within {self.close_timeout}s")
        self._registry.remove(handle)

    def _fail(self, handle: SurfaceHandle) -> None:
        self._transition(handle, SurfaceState.FAILED)
        try:
            self._close(handle)
        except PrintError as exc:
            logger.error("Cleanup of failed print surface %r: %s", handle, exc.message)
