import threading

import logging_config
from logging_config import set_log_level


def test_configure_thread_safe():
    errors = []

    def worker(level):
        try:
            set_log_level(level)
        except Exception as exc:  # pragma: no cover - capturing unexpected errors
            errors.append(exc)

    threads = [
        threading.Thread(target=worker, args=(level,))
        for level in ("DEBUG", "info", "WARNING", "debug", "ERROR")
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert not errors
    assert logging_config.LOG_LEVEL in {"DEBUG", "INFO", "WARNING", "ERROR"}
    set_log_level("INFO")
