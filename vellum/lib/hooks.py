"""Async action/filter hooks fired by the page and version services.

Actions run callbacks for their side effects; filters pass a value through
each callback in turn and return the result. Callbacks may be plain
functions or coroutines and run in ascending priority order.

Usage:
    from vellum.lib.hooks import hooks, action, AFTER_VERSION_PUBLISH

    @action(AFTER_VERSION_PUBLISH)
    async def announce(version):
        ...

    await hooks.do_action(AFTER_PAGE_SAVE, page, is_new=True)
    payload = await hooks.apply_filters(VERSION_SNAPSHOT, payload, page)
"""

import asyncio
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, TypeVar

from vellum.lib import observability

T = TypeVar("T")


@dataclass(order=True)
class HookHandler:
    priority: int
    callback: Callable = field(compare=False)

    async def call(self, *args: Any, **kwargs: Any) -> Any:
        result = self.callback(*args, **kwargs)
        if asyncio.iscoroutine(result):
            return await result
        return result


class HookRegistry:
    """Registry of action and filter callbacks keyed by hook name."""

    def __init__(self) -> None:
        self._actions: dict[str, list[HookHandler]] = defaultdict(list)
        self._filters: dict[str, list[HookHandler]] = defaultdict(list)

    @staticmethod
    def _register(table: dict[str, list[HookHandler]], name: str, callback: Callable, priority: int) -> None:
        table[name].append(HookHandler(priority=priority, callback=callback))
        table[name].sort()

    @staticmethod
    def _unregister(table: dict[str, list[HookHandler]], name: str, callback: Callable) -> bool:
        handlers = table.get(name, [])
        for i, handler in enumerate(handlers):
            if handler.callback is callback:
                handlers.pop(i)
                return True
        return False

    def add_action(self, hook_name: str, callback: Callable[..., Any], priority: int = 10) -> None:
        """Register an action callback; lower priorities run first."""
        self._register(self._actions, hook_name, callback, priority)

    def add_filter(self, hook_name: str, callback: Callable[..., T], priority: int = 10) -> None:
        """Register a filter callback; lower priorities run first."""
        self._register(self._filters, hook_name, callback, priority)

    def remove_action(self, hook_name: str, callback: Callable[..., Any]) -> bool:
        return self._unregister(self._actions, hook_name, callback)

    def remove_filter(self, hook_name: str, callback: Callable[..., Any]) -> bool:
        return self._unregister(self._filters, hook_name, callback)

    def has_action(self, hook_name: str) -> bool:
        return bool(self._actions.get(hook_name))

    def has_filter(self, hook_name: str) -> bool:
        return bool(self._filters.get(hook_name))

    async def do_action(self, hook_name: str, *args: Any, **kwargs: Any) -> None:
        """Run every action registered under ``hook_name``.

        Exceptions raised by a callback propagate to the service that fired
        the hook.
        """
        handlers = self._actions.get(hook_name)
        if not handlers:
            return
        with observability.span(f"hook.action:{hook_name}", hook_name=hook_name):
            for handler in list(handlers):
                await handler.call(*args, **kwargs)

    async def apply_filters(self, hook_name: str, value: T, *args: Any, **kwargs: Any) -> T:
        """Pass ``value`` through every filter registered under ``hook_name``."""
        handlers = self._filters.get(hook_name)
        if not handlers:
            return value
        with observability.span(f"hook.filter:{hook_name}", hook_name=hook_name):
            for handler in list(handlers):
                value = await handler.call(value, *args, **kwargs)
            return value

    def clear(self) -> None:
        self._actions.clear()
        self._filters.clear()


# Global registry used by the services
hooks = HookRegistry()


def action(hook_name: str, priority: int = 10) -> Callable[[Callable], Callable]:
    """Decorator registering the function as an action on the global registry."""

    def decorator(func: Callable) -> Callable:
        hooks.add_action(hook_name, func, priority)
        return func

    return decorator


def filter(hook_name: str, priority: int = 10) -> Callable[[Callable], Callable]:
    """Decorator registering the function as a filter on the global registry."""

    def decorator(func: Callable) -> Callable:
        hooks.add_filter(hook_name, func, priority)
        return func

    return decorator


# Page actions
BEFORE_PAGE_SAVE = "before_page_save"
AFTER_PAGE_SAVE = "after_page_save"
AFTER_PAGE_MOVE = "after_page_move"
BEFORE_PAGE_DELETE = "before_page_delete"
AFTER_PAGE_DELETE = "after_page_delete"

# Version actions
AFTER_VERSION_CREATE = "after_version_create"
AFTER_VERSION_PUBLISH = "after_version_publish"
AFTER_VERSION_ARCHIVE = "after_version_archive"
AFTER_VERSION_DELETE = "after_version_delete"
AFTER_VERSION_RESTORE = "after_version_restore"

# Filters
VERSION_SNAPSHOT = "version_snapshot"
SEARCH_RESULTS = "search_results"
