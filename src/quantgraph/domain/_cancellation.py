"""
Cooperative cancellation token.

Every public node and engine operation accepts an optional `token`. Nodes only
pass it along; the engine checks it at each call boundary and raises
`OperationCancelledError` once the token has been cancelled. A `None` token is
never cancelled.
"""

from __future__ import annotations

import threading
from typing import Optional

from ._errors import OperationCancelledError


class CancellationToken:
    """
    Thread-safe cancellation flag.

    Parameters
    ----------
    reason : str, optional
        Default message used when raising `OperationCancelledError`.

    Notes
    -----
    Cancellation is one-way: once cancelled, a token stays cancelled.
    """

    def __init__(self, reason: str = "operation cancelled") -> None:
        self._event = threading.Event()
        self._reason = reason

    def cancel(self, reason: Optional[str] = None) -> None:
        """
        Mark the token as cancelled.

        Parameters
        ----------
        reason : Optional[str]
            Overrides the message reported by `raise_if_cancelled`.
        """
        if reason is not None:
            self._reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        """Return True once `cancel` has been called."""
        return self._event.is_set()

    @property
    def reason(self) -> str:
        return self._reason

    def raise_if_cancelled(self) -> None:
        """
        Raise `OperationCancelledError` if the token has been cancelled.
        """
        if self._event.is_set():
            raise OperationCancelledError(self._reason)


def check_token(token: Optional[CancellationToken]) -> None:
    """
    Raise if `token` is present and cancelled; no-op for None.
    """
    if token is not None:
        token.raise_if_cancelled()
