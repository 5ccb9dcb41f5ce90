# iterstate.py ---------------------------------------------------------------
from dataclasses import dataclass, field
from typing import Union

import torch

Scalar = Union[float, torch.Tensor]


@dataclass
class IterState:
    """The current point (x, y) of a scalar ODE.

    Only the latest point is kept: the next Euler prediction needs nothing
    but the best estimate of y at x.  `y` may be a Python float or a
    one-element floating-point tensor.
    """
    # user-visible state
    x:      float
    y:      Scalar

    # counters, not history
    stats:  dict = field(default_factory=lambda: dict(
                   step=0, picard=0, fcall=0))

    def __post_init__(self):
        if isinstance(self.y, torch.Tensor):
            if self.y.numel() != 1:
                raise ValueError(
                    f"y must hold a single value, got shape {tuple(self.y.shape)}")
            if not self.y.is_floating_point():
                raise ValueError(f"y must be floating point, got {self.y.dtype}")
            self.y = self.y.reshape(())
        else:
            self.y = float(self.y)
        self.x = float(self.x)

    def copy(self) -> "IterState":
        y = self.y.clone() if isinstance(self.y, torch.Tensor) else self.y
        return IterState(self.x, y, dict(self.stats))

    def as_tuple(self) -> tuple[float, float]:
        y = self.y.item() if isinstance(self.y, torch.Tensor) else self.y
        return self.x, y
