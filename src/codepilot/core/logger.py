"""
Logger capability shared by the agent, the executor and tool bodies.

Components take a logger through their constructor instead of reaching for a module-level one, so
tests can inject fakes.  Any :class:`logging.Logger` satisfies :class:`Logger`.
"""

from typing import (
    Any,
    Protocol,
    runtime_checkable,
)


@runtime_checkable
class Logger(Protocol):
    """The four levels core code logs at."""

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None: ...

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None: ...

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None: ...

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None: ...


class NoopLogger:
    """Discards everything.  Default for components constructed without a logger."""

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        pass

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        pass

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        pass

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        pass
