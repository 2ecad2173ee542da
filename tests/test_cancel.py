import os
import signal
import threading

from pipeline.cancel import AbortToken, install_signal_handlers


def test_token_keeps_first_reason():
    token = AbortToken()
    assert not token.requested

    token.request("first")
    token.request("second")

    assert token.requested
    assert token.reason == "first"
    assert token.wait(0)


def test_sigterm_requests_abort_and_restore():
    token = AbortToken()
    before = signal.getsignal(signal.SIGTERM)

    restore = install_signal_handlers(token)
    try:
        os.kill(os.getpid(), signal.SIGTERM)
        assert token.wait(2)
        assert token.reason == "signal:SIGTERM"
    finally:
        restore()

    assert signal.getsignal(signal.SIGTERM) is before


def test_install_off_main_thread_is_noop():
    token = AbortToken()
    restores = []

    t = threading.Thread(target=lambda: restores.append(install_signal_handlers(token)))
    t.start()
    t.join()

    restores[0]()
    assert not token.requested
