"""Change-notification hooks.

A table may call a hook after each insert, update and delete. Hooks are
plain callables, given either directly or by a name that a
:class:`HookDispatcher` resolves when the hook is set::

    hooks = HookRegistry()

    @hooks.register("stamp_modified")
    def stamp_modified(current, previous):
        ...

    table.set_on_after_update("stamp_modified")
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Protocol

from logical_tables.errors import HookError

logger = logging.getLogger(__name__)

Hook = Callable[..., Any]


class HookDispatcher(Protocol):
    """Resolves hook names to callables."""

    def resolve(self, name: str) -> Hook:
        """Return the callable registered as *name*.

        Raises:
            HookError: If nothing callable is registered under that name.
        """
        ...


class HookRegistry:
    """Dictionary-backed :class:`HookDispatcher`."""

    def __init__(self) -> None:
        self._hooks: dict[str, Hook] = {}

    def register(self, name: str, fn: Hook | None = None) -> Any:
        """Register *fn* under *name*. Without *fn*, return a decorator.

        Raises:
            HookError: If *fn* is not callable.
        """
        if fn is None:
            def decorator(func: Hook) -> Hook:
                self.register(name, func)
                return func

            return decorator
        if not callable(fn):
            raise HookError(f"Hook '{name}' is not callable: {fn!r}")
        self._hooks[name] = fn
        logger.debug("registered hook %s", name)
        return fn

    def unregister(self, name: str) -> bool:
        return self._hooks.pop(name, None) is not None

    def resolve(self, name: str) -> Hook:
        try:
            fn = self._hooks[name]
        except KeyError:
            raise HookError(f"Unknown hook '{name}'") from None
        if not callable(fn):
            raise HookError(f"Hook '{name}' is not callable")
        return fn

    def names(self) -> list[str]:
        return sorted(self._hooks)

    def __contains__(self, name: object) -> bool:
        return name in self._hooks


class HookGuard:
    """Re-entrancy flag shared by a table and the views it passes to hooks."""

    def __init__(self) -> None:
        self.active = False

    @contextmanager
    def dispatching(self) -> Iterator[bool]:
        """Yield True if the caller may dispatch, False while another dispatch runs."""
        if self.active:
            logger.debug("skipping nested hook dispatch")
            yield False
            return
        self.active = True
        try:
            yield True
        finally:
            self.active = False
