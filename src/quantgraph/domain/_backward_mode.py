"""
Backward pass policy.

`BackwardMode` selects how far gradient flows through a recurrent node's
hidden-state connection:

- `FULL_BACKPROP`: the hidden-state gradient is chained onward so an external
  unroller can perform full backpropagation through time.
- `ONE_STEP_APPROXIMATION`: a zero gradient is substituted for the hidden-state
  input, truncating the chain after one step.

Non-recurrent nodes accept the mode and ignore it.
"""

from enum import Enum


class BackwardMode(Enum):
    """Enumerated backward pass policies."""

    FULL_BACKPROP = "full_backprop"
    ONE_STEP_APPROXIMATION = "one_step_approximation"


__all__ = [
    BackwardMode.__name__,
]
