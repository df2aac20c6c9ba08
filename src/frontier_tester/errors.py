"""
Error taxonomy for the harness.

Connection and timeout errors subclass the matching builtins so callers
can catch either the harness type or the standard one.
"""

from __future__ import annotations

from typing import Any, Optional


class FrontierTesterError(RuntimeError):
    """Base class for harness errors. ``context`` holds reproduction details."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
        return f"{self.message} ({details})"


class NodeConnectionError(FrontierTesterError, ConnectionError):
    """The node could not be reached."""


class RpcTimeoutError(FrontierTesterError, TimeoutError):
    """A request or receipt wait exceeded its timeout."""


class RpcError(FrontierTesterError):
    """The node rejected a request (JSON-RPC error, revert, bad response)."""

    def __init__(
        self,
        message: str,
        method: str,
        params: Optional[list] = None,
        code: Optional[int] = None,
        data: Any = None,
        **context: Any,
    ) -> None:
        super().__init__(message, method=method, params=params, **context)
        self.method = method
        self.params = params
        self.code = code
        self.data = data


class DeploymentError(FrontierTesterError):
    """A contract could not be deployed."""


class AbiError(ValueError):
    """ABI lookup or artifact parsing failed."""


class AssertionFailure(AssertionError):
    """A scenario post-condition did not hold."""

    def __init__(self, message: str, expected: Any = None, actual: Any = None) -> None:
        super().__init__(f"{message}: expected {expected!r}, got {actual!r}")
        self.expected = expected
        self.actual = actual
