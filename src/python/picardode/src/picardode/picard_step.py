# picard_step.py
"""
One predictor-corrector step for dy/dx = f(x, y).

The Euler prediction is refined by Picard iteration on the trapezoidal
integral of f over the step:

    y_{k+1} = y_old + dx/2 * (f(x, y_old) + f(x + dx, y_k))

until two successive estimates agree.  With a constant f this is exact;
in general it converges to the implicit trapezoidal solution whenever
|dx/2 * df/dy| < 1.
"""
import logging
from typing import Callable, Optional

import torch

from .errors import ConvergenceFailure, is_finite
from .iterstate import IterState

logger = logging.getLogger(__name__)

# how far above rtol a stalled corrector may still sit and count as converged
ROUNDOFF_SPREAD = 16.0


def machine_eps(y) -> float:
    """Unit roundoff of the dtype `y` is stored in (float64 for Python floats)."""
    dtype = y.dtype if isinstance(y, torch.Tensor) else torch.float64
    return torch.finfo(dtype).eps


def picard_step(
    dx:       float,
    f:        Callable,
    state:    IterState,
    *,
    rtol:     Optional[float] = None,
    atol:     float = 0.0,
    max_iter: int = 100,
    exact:    bool = False,
) -> None:
    """
    Advance `state` by one step of size `dx` in place.

    Parameters
    ----------
    dx       : step size; meant to be small against the curvature of y.
    f        : pure right-hand side f(x, y) -> dy/dx.  Called once at the
               predictor point, then twice per corrector pass.
    state    : IterState, mutated only once the corrector has converged.
    rtol     : relative tolerance between successive corrector outputs,
               measured against the largest of |y|, |y_old|, |dx*f0| and
               |dx*f1|; defaults to 4 * eps of the state's dtype.  Once the
               difference stops shrinking, up to ROUNDOFF_SPREAD * rtol is
               accepted as roundoff.
    atol     : absolute tolerance, added to the relative one.
    max_iter : cap on corrector passes.
    exact    : stop only when two successive outputs are bit-identical.

    Raises
    ------
    ConvergenceFailure
        if no fixed point is reached within `max_iter` passes (the corrector
        oscillates or diverges).  `state` is left as it was.

    A NaN or infinite estimate ends the iteration at once and is committed,
    so domain errors in `f` propagate into the state instead of looping.
    """
    if max_iter < 1:
        raise ValueError(f"max_iter must be positive, got {max_iter}")

    x_old, y_old = state.x, state.y
    if rtol is None:
        rtol = 4.0 * machine_eps(y_old)

    # ---- 1. Euler predictor -----------------------------------------------
    y      = y_old + dx * f(x_old, y_old)
    y_prev = y
    fcall  = 1
    passes = 0
    delta_old = None

    # ---- 2. Picard corrector ----------------------------------------------
    while is_finite(y):
        if passes >= max_iter:
            raise ConvergenceFailure(x_old, y_old, dx, passes, (y_prev, y))

        y_prev = y
        f0 = f(x_old, y_old)
        f1 = f(x_old + dx, y_prev)
        y  = y_old + 0.5 * (f0 + f1) * dx
        fcall  += 2
        passes += 1

        if exact:
            if y == y_prev:
                break
            continue

        # roundoff in y scales with the terms summed, not with |y| alone
        scale = max(abs(y), abs(y_old), abs(dx * f0), abs(dx * f1))
        tol   = atol + rtol * scale
        delta = abs(y - y_prev)
        if delta <= tol:
            break
        # a contraction only stops shrinking once it sits at the roundoff floor
        if (delta_old is not None and delta >= delta_old
                and delta <= atol + ROUNDOFF_SPREAD * rtol * scale):
            break
        delta_old = delta
    else:
        if is_finite(y_old):                # report only where it first appears
            logger.warning("non-finite estimate y=%r on step x=%r -> %r after "
                           "%d corrector passes", y, x_old, x_old + dx, passes)

    # ---- 3. commit ----------------------------------------------------------
    state.y  = y
    state.x  = x_old + dx
    state.stats["step"]   += 1
    state.stats["picard"] += passes
    state.stats["fcall"]  += fcall

    logger.debug("step x=%r dx=%r: %d corrector passes", x_old, dx, passes)
