"""Registry for ``before_api_call`` hooks.

A hook sees every authorized API call just before it touches the database
and can veto it. Hooks are plain callables::

    (action: str, table: str, identity: Identity) -> True | str

Returning ``True`` lets the call proceed. Any other value (usually a short
reason string for the log) denies it; the client only ever sees a bare 403.
"""

import logging
from collections.abc import Callable
from typing import Any

from tablegate.auth.types import Action, Identity
from tablegate.core.errors import Forbidden

logger = logging.getLogger(__name__)

BeforeApiCallFn = Callable[[str, str, Identity], Any]


class BeforeApiCallRegistry:
    """Registry for before-call hooks.

    Hooks run in registration order and the first veto wins. Registration
    is typically done at application startup or with the
    @before_api_call decorator.

    Example:
        @before_api_call("readOnlyOrders")
        def read_only_orders(action, table, identity):
            if table == "orders" and action != "view":
                return "orders are read-only"
            return True
    """

    _hooks: dict[str, BeforeApiCallFn] = {}

    @classmethod
    def register(cls, name: str, hook_fn: BeforeApiCallFn) -> None:
        """Register a hook function by name.

        Idempotent - re-registering the same name is a no-op.
        """
        if name in cls._hooks:
            return
        cls._hooks[name] = hook_fn

    @classmethod
    def is_registered(cls, name: str) -> bool:
        return name in cls._hooks

    @classmethod
    def list_registered(cls) -> list[str]:
        """List all registered hook names."""
        return sorted(cls._hooks.keys())

    @classmethod
    def clear(cls) -> None:
        """Clear all registrations. Primarily for testing."""
        cls._hooks.clear()

    @classmethod
    def run(cls, action: Action | str, table: str, identity: Identity) -> None:
        """Run every hook for one call.

        Raises:
            Forbidden: If any hook returns something other than True
        """
        action_name = action.value if isinstance(action, Action) else str(action)
        for name, hook_fn in list(cls._hooks.items()):
            result = hook_fn(action_name, table, identity)
            if result is not True:
                logger.info(
                    "Hook %s denied %s on %s for user %s: %s",
                    name,
                    action_name,
                    table,
                    identity.user_id,
                    result,
                )
                raise Forbidden()


def before_api_call(name: str) -> Callable[[BeforeApiCallFn], BeforeApiCallFn]:
    """Decorator to register a before-call hook.

    Usage:
        @before_api_call("auditDeletes")
        def audit_deletes(action, table, identity):
            ...
            return True
    """

    def decorator(fn: BeforeApiCallFn) -> BeforeApiCallFn:
        BeforeApiCallRegistry.register(name, fn)
        return fn

    return decorator
