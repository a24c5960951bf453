"""Outcome of a chat-platform side effect (posting, reacting)."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class Result:
    """Success flag plus the Slack error text or the call's payload.

    Falsy on failure, so callers can write ``if not result``.  *value*
    holds what the platform handed back, e.g. the ``ts`` of a posted
    message.  Nodes that must fail on a falsy result use
    :meth:`or_raise` to turn it into their own failure type::

        ts = result.or_raise(DeliveryFailure)
    """

    success: bool
    message: str = ""
    value: Any = field(default=None, repr=False)

    @classmethod
    def ok(cls, message: str = "", *, value: Any = None) -> Result:
        return cls(success=True, message=message, value=value)

    @classmethod
    def fail(cls, message: str = "") -> Result:
        return cls(success=False, message=message or "unknown error")

    def or_raise(self, failure: type[Exception]) -> Any:
        if not self.success:
            raise failure(self.message)
        return self.value

    def __bool__(self) -> bool:
        return self.success

    def __iter__(self):
        yield self.success
        yield self.message
