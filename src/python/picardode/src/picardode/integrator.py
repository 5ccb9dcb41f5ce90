# integrator.py
import logging, math
from typing import Callable, Optional

from .errors import check_finite
from .iterstate import IterState
from .picard_step import picard_step

logger = logging.getLogger(__name__)


def _check_dx(dx):
    if not (math.isfinite(dx) and dx > 0):
        raise ValueError(f"dx must be a positive finite number, got {dx!r}")


def _advance(state: IterState, dx: float, f: Callable, x_final: float,
             step_options: dict) -> bool:
    """One drive-loop step; True once state.x has landed on x_final."""
    if state.x < x_final - dx:
        x_before = state.x
        picard_step(dx, f, state, **step_options)
        if state.x == x_before:
            raise ValueError(f"dx={dx!r} is below the resolution of x={x_before!r}")
        return False

    # shortened last step, corrects for overshoot
    picard_step(x_final - state.x, f, state, **step_options)
    state.x = x_final
    return True


def integrate(state: IterState, dx: float, f: Callable, x_final: float, *,
              output: Optional[Callable] = None, strict: bool = False,
              **step_options) -> IterState:
    """
    Drive `state` to `x_final` with fixed steps of size `dx`.

    Steps of `dx` are taken while x < x_final - dx, then one step of
    x_final - x lands exactly on the bound.  Extra keyword arguments go to
    `picard_step` (rtol, atol, max_iter, exact).  `output(x, y)` is called
    after every step.  With `strict=True` a non-finite y raises DomainError
    as soon as it appears.  Returns `state`, mutated in place.
    """
    _check_dx(dx)
    x_final = float(x_final)

    landed = False
    while not landed:
        landed = _advance(state, dx, f, x_final, step_options)
        if output is not None:
            output(state.x, state.y)
        if strict:
            check_finite(state)

    logger.debug("reached x=%r after %d steps (%d corrector passes, %d f calls)",
                 state.x, state.stats["step"], state.stats["picard"],
                 state.stats["fcall"])
    return state


class PicardIntegrator:
    """Fixed-step Picard predictor-corrector integrator for a scalar ODE."""

    # ---- construction -----------------------------------------------------
    def __init__(self, f: Callable, x0: float, y0, x_final: float, *,
                 dx: float, rtol: Optional[float] = None, atol: float = 0.0,
                 max_iter: int = 100, exact: bool = False,
                 output: Optional[Callable] = None, strict: bool = False):
        _check_dx(dx)
        self.f        = f
        self.state    = IterState(x=x0, y=y0)
        self.x_final  = float(x_final)
        self.dx       = dx
        self.output   = output
        self.strict   = strict
        self.step_options = dict(rtol=rtol, atol=atol,
                                 max_iter=max_iter, exact=exact)
        self._landed  = False

    @property
    def done(self) -> bool:
        return self._landed

    def record_output(self):
        if self.output is not None:
            self.output(self.state.x, self.state.y)

    # ---- main loop --------------------------------------------------------
    def step_once(self):
        """Advance one step (shortened at the bound) and return (x, y)."""
        if not self._landed:
            self._landed = _advance(self.state, self.dx, self.f,
                                    self.x_final, self.step_options)
            self.record_output()
            if self.strict:
                check_finite(self.state)
        return self.state.as_tuple()

    def run(self):
        while not self._landed:
            self.step_once()
        return self.state.as_tuple()
