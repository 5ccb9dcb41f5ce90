from .errors import ConvergenceFailure, DomainError, check_finite
from .integrator import PicardIntegrator, integrate
from .iterstate import IterState
from .picard_step import machine_eps, picard_step

__all__ = [
    "ConvergenceFailure",
    "DomainError",
    "IterState",
    "PicardIntegrator",
    "check_finite",
    "integrate",
    "machine_eps",
    "picard_step",
]
