"""
Trainable parameter interface definitions.

This module defines the domain-level interface for trainable parameters. A
parameter pairs a named value tensor with a gradient tensor that the owning
node writes during its backward pass. Optimizers (out of scope here) mutate
the value; nodes mutate the gradient.
"""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from ._tensor import ITensor


@runtime_checkable
class IParameter(Protocol):
    """
    Domain-level interface for trainable parameters.

    Notes
    -----
    - The gradient is absent (None) until the owning node's first backward.
    - Gradients are overwritten by `set_gradient` and summed by
      `add_gradient`; which one a node uses is part of that node's contract.
    """

    @property
    def name(self) -> str:
        """Parameter name (unique within its owning node)."""
        ...

    @property
    def value(self) -> ITensor:
        """Current value tensor."""
        ...

    @property
    def gradient(self) -> Optional[ITensor]:
        """
        Return the gradient tensor associated with this parameter.

        Returns
        -------
        Optional[ITensor]
            The gradient tensor, or None if no backward has run yet.
        """
        ...

    @property
    def requires_grad(self) -> bool:
        """Whether backward passes should write a gradient for this parameter."""
        ...

    def set_gradient(self, grad: Optional[ITensor]) -> None:
        """Overwrite the stored gradient."""
        ...

    def add_gradient(self, grad: ITensor) -> None:
        """Sum `grad` into the stored gradient."""
        ...

    def zero_grad(self) -> None:
        """Clear the stored gradient."""
        ...
