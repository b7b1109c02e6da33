"""Scoped teardown of the ephemeral registry on every exit path."""

import signal
import threading
from typing import Dict, Optional

from imageferry.exceptions import TransferInterrupted
from imageferry.models.transfer import RegistryHandle

# SIGINT already surfaces as KeyboardInterrupt
GUARDED_SIGNALS = tuple(
    getattr(signal, name) for name in ("SIGTERM", "SIGHUP") if hasattr(signal, name)
)


class CleanupGuard:
    """
    Tears down the registered registry exactly once.

    Use as a context manager around everything that follows registry launch:

        with CleanupGuard(manager) as guard:
            handle = manager.start()
            guard.register(handle)
            ...

    While the guard is active, SIGTERM and SIGHUP raise TransferInterrupted
    so the with-block unwinds and finalize() runs.
    """

    def __init__(self, registry_manager):
        self.registry_manager = registry_manager
        self.handle: Optional[RegistryHandle] = None
        self.finalized = False
        self._previous_handlers: Dict[int, object] = {}

    def register(self, handle: RegistryHandle) -> None:
        self.handle = handle

    def finalize(self) -> None:
        """Stop the registered registry, if any. Later calls are no-ops."""
        if self.finalized:
            return
        self.finalized = True
        handle, self.handle = self.handle, None
        if handle is not None:
            self.registry_manager.stop(handle)

    def _on_signal(self, signum, _frame):
        raise TransferInterrupted(signum, signal.Signals(signum).name)

    def _install_handlers(self) -> None:
        if threading.current_thread() is not threading.main_thread():
            return
        for signum in GUARDED_SIGNALS:
            self._previous_handlers[signum] = signal.signal(signum, self._on_signal)

    def _restore_handlers(self) -> None:
        for signum, handler in self._previous_handlers.items():
            signal.signal(signum, handler)
        self._previous_handlers.clear()

    def __enter__(self):
        self._install_handlers()
        return self

    def __exit__(self, exc_type, exc_val, _exc_tb):
        try:
            self.finalize()
        finally:
            self._restore_handlers()
        return False
