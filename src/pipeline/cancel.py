from __future__ import annotations

import signal
import threading
from typing import Callable, Optional

from logger import get_logger

log = get_logger("pipewright.cancel")


class AbortToken:
    """
    Cross-thread abort request.

    Set once by a signal handler (or a caller); polled by the process runner
    and checked by the sequencer between stages.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._reason: Optional[str] = None

    def request(self, reason: str = "abort requested") -> None:
        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    @property
    def requested(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def wait(self, timeout: float | None = None) -> bool:
        return self._event.wait(timeout)


def install_signal_handlers(token: AbortToken) -> Callable[[], None]:
    """
    Route SIGINT / SIGTERM into `token`.

    Returns a callable that restores the previous handlers. Only valid on the
    main thread; elsewhere it is a no-op.
    """
    if threading.current_thread() is not threading.main_thread():
        return lambda: None

    def _handler(signum, _frame) -> None:
        name = signal.Signals(signum).name
        log.warning(f"Received {name}; aborting pipeline")
        token.request(f"signal:{name}")

    previous: dict[int, object] = {}
    for sig in (signal.SIGINT, signal.SIGTERM):
        previous[sig] = signal.getsignal(sig)
        signal.signal(sig, _handler)

    def _restore() -> None:
        for sig, handler in previous.items():
            signal.signal(sig, handler)

    return _restore
