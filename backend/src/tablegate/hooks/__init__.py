"""TableGate API call hooks.

Provides the ``before_api_call`` extension point: registered callables run
after authorization and before any database access, and can veto the call.

Usage:
    from tablegate.hooks import before_api_call

    @before_api_call("noDeletesOnWeekends")
    def no_deletes_on_weekends(action, table, identity):
        if action == "delete" and date.today().weekday() >= 5:
            return "deletes are disabled on weekends"
        return True
"""

from tablegate.hooks.registry import BeforeApiCallRegistry, before_api_call

__all__ = [
    "BeforeApiCallRegistry",
    "before_api_call",
]
