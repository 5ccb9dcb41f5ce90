# errors.py
import math

import torch


class ConvergenceFailure(RuntimeError):
    """Picard corrector did not reach a fixed point within `max_iter` passes."""

    def __init__(self, x, y, dx, iterations, last):
        self.x          = x
        self.y          = y               # y at the start of the step
        self.dx         = dx
        self.iterations = iterations
        self.last       = last            # (previous iterate, final iterate)
        super().__init__(
            f"Picard corrector did not converge after {iterations} iterations "
            f"(x={x!r}, dx={dx!r}, last iterates {last[0]!r} -> {last[1]!r})")


class DomainError(ArithmeticError):
    """The solution estimate is no longer finite (NaN or inf)."""

    def __init__(self, x, y):
        self.x = x
        self.y = y
        super().__init__(f"non-finite solution estimate y={y!r} at x={x!r}")


def is_finite(v) -> bool:
    if isinstance(v, torch.Tensor):
        return bool(torch.isfinite(v).all())
    return math.isfinite(v)


def check_finite(state):
    """Raise DomainError if `state.y` is NaN or infinite."""
    if not is_finite(state.y):
        raise DomainError(state.x, state.y)
