"""Forward ytsource log records to the host's diagnostic sink.

One handler on the ``ytsource`` logger serves every source in the
process. Each source routes the records emitted while one of its methods
runs to its own host through a context variable, so two sources on two
hosts never share a sink.
"""

import functools
import inspect
import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, TypeVar, cast

PACKAGE_LOGGER = "ytsource"

LogSink = Callable[..., None]
F = TypeVar("F", bound=Callable[..., Any])

_current_sink: ContextVar[LogSink | None] = ContextVar("ytsource_log_sink", default=None)


class HostLogHandler(logging.Handler):
    """Logging handler that hands formatted records to the active host sink.

    Records emitted outside any source method are left to the application's
    own handlers. Records from the host's own logger are ignored so a host
    that logs through :mod:`logging` doesn't loop back into itself.
    """

    def __init__(self, level: int = logging.INFO, ignore: str | None = None) -> None:
        super().__init__(level)
        self._ignore = ignore
        self.setFormatter(logging.Formatter("[%(name)s] %(levelname)s %(message)s"))

    def emit(self, record: logging.LogRecord) -> None:
        sink = _current_sink.get()
        if sink is None:
            return
        if self._ignore and record.name.startswith(self._ignore):
            return
        try:
            sink(self.format(record))
        except Exception:
            self.handleError(record)


def install_host_handler(ignore: str | None = None) -> HostLogHandler:
    """Attach the shared handler to the ``ytsource`` logger once.

    The package logger is lowered to INFO when it has no level of its own,
    so resolution outcomes reach the host even under a WARNING root.
    """
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in package_logger.handlers:
        if isinstance(handler, HostLogHandler):
            return handler
    handler = HostLogHandler(ignore=ignore)
    package_logger.addHandler(handler)
    if package_logger.level == logging.NOTSET:
        package_logger.setLevel(logging.INFO)
    return handler


@contextmanager
def forwarding_to(sink: LogSink | None) -> Iterator[None]:
    """Route records logged inside the block to ``sink``; no-op for None."""
    if sink is None:
        yield
        return
    token = _current_sink.set(sink)
    try:
        yield
    finally:
        _current_sink.reset(token)


def forwards_host_logs(method: F) -> F:
    """Run a source method with its records routed to ``self.log_sink``.

    Tasks started inside the method copy the context, so background
    session creation keeps logging to the same host.
    """
    if inspect.iscoroutinefunction(method):

        @functools.wraps(method)
        async def async_wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
            with forwarding_to(self.log_sink):
                return await method(self, *args, **kwargs)

        return cast(F, async_wrapper)

    @functools.wraps(method)
    def wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
        with forwarding_to(self.log_sink):
            return method(self, *args, **kwargs)

    return cast(F, wrapper)
