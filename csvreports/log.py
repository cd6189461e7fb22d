import functools
import logging
import os
import time

__all__ = ["get_logger", "timing_decorator"]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

_ROOT_NAME = "csvreports"


def _configure_root() -> logging.Logger:
    root = logging.getLogger(_ROOT_NAME)
    if root.handlers:
        return root

    root.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
    root.addHandler(handler)
    return root


def get_logger(name: str = _ROOT_NAME) -> logging.Logger:
    """
    Return a logger under the package hierarchy.

    Handlers live on the package root only, so calling this from every module
    never duplicates output.
    """
    _configure_root()
    if name != _ROOT_NAME and not name.startswith(_ROOT_NAME + "."):
        name = f"{_ROOT_NAME}.{name}"
    return logging.getLogger(name)


def timing_decorator(func=None, *, level="INFO"):
    """
    Log how long the wrapped call took.

    Usable bare (``@timing_decorator``) or with arguments
    (``@timing_decorator(level="DEBUG")``).
    """
    def decorator(fn):
        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            fn_logger = get_logger(fn.__module__)
            log_method = getattr(fn_logger, level.lower())

            start_time = time.perf_counter()
            try:
                return fn(*args, **kwargs)
            finally:
                elapsed = time.perf_counter() - start_time
                log_method("%s executed in %.4f seconds", fn.__qualname__, elapsed)
        return wrapper

    if func is not None:
        return decorator(func)
    return decorator
