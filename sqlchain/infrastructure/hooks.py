"""
Hook Registry - Named transformer and listener callbacks.

Builders and models receive a registry explicitly; nothing is registered
process-wide. Filters thread a value through their callbacks and return
the result, actions just notify.
"""

# Standard library imports
import itertools
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_PRIORITY = 10


@dataclass(order=True)
class _Hook:
    priority: int
    sequence: int
    callback: Callable[..., Any] = field(compare=False)


class HookRegistry:
    """
    Registry of named callbacks.

    Callbacks for one name run by ascending priority, then in registration
    order.
    """

    def __init__(self) -> None:
        self._hooks: dict[str, list[_Hook]] = {}
        self._sequence = itertools.count()

    def add(self, name: str, callback: Callable[..., Any], priority: int = DEFAULT_PRIORITY) -> None:
        """
        Register a callback.

        Args:
            name: Hook name
            callback: Callable invoked when the hook runs
            priority: Lower values run first
        """
        hooks = self._hooks.setdefault(name, [])
        hooks.append(_Hook(priority, next(self._sequence), callback))
        hooks.sort()
        logger.debug(f"Registered hook {name} (priority {priority})")

    def remove(self, name: str, callback: Callable[..., Any]) -> bool:
        """
        Unregister a callback.

        Returns:
            True if the callback was registered under the name
        """
        hooks = self._hooks.get(name, [])
        for hook in hooks:
            if hook.callback == callback:
                hooks.remove(hook)
                if not hooks:
                    del self._hooks[name]
                return True
        return False

    def has(self, name: str) -> bool:
        return bool(self._hooks.get(name))

    def clear(self, name: str | None = None) -> None:
        """Drop the callbacks of one name, or of every name."""
        if name is None:
            self._hooks.clear()
        else:
            self._hooks.pop(name, None)

    def apply(self, name: str, value: Any, *args: Any) -> Any:
        """
        Thread a value through the callbacks registered under a name.

        Args:
            name: Hook name
            value: Initial value
            *args: Extra arguments passed to every callback

        Returns:
            Value returned by the last callback, or the initial value
        """
        for hook in list(self._hooks.get(name, ())):
            value = hook.callback(value, *args)
        return value

    def do(self, name: str, *args: Any) -> None:
        """Invoke the callbacks registered under a name, ignoring results."""
        for hook in list(self._hooks.get(name, ())):
            hook.callback(*args)

    def __len__(self) -> int:
        return sum(len(hooks) for hooks in self._hooks.values())
