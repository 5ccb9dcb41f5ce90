#!/usr/bin/env python3
# examples/picard_e_driver.py
"""
Compute e by integrating dy/dx = y from (0, 1) with the Picard
predictor-corrector.  Changing --dx shows the tradeoff between truncation
error (large dx) and roundoff error (many small steps).

    python picard_e_driver.py --dx 1e-6
    python picard_e_driver.py --sweep
    python picard_e_driver.py --dx 1e-3 --scipy
"""

import argparse, logging, math, time
from picardode import IterState, integrate, picard_step


def rhs(x: float, y: float) -> float:
    return y


def positive_float(text: str) -> float:
    value = float(text)
    if not (math.isfinite(value) and value > 0):
        raise argparse.ArgumentTypeError(f"expected a positive number, got {text}")
    return value


# ---------------------------------------------------------------------------
def run_once(dx: float, x_final: float, exact: bool, max_iter: int):
    state = IterState(x=0.0, y=1.0)
    opts  = dict(exact=exact, max_iter=max_iter)

    # plain fixed steps up to one dx short of the bound ...
    while state.x < x_final - dx:
        picard_step(dx, rhs, state, **opts)
    print(f"{state.x:1.20f} {state.y:1.20f}")

    # ... then the corrective step onto it
    picard_step(x_final - state.x, rhs, state, **opts)
    state.x = x_final
    print(f"{state.x:1.20f} {state.y:1.20f}")
    print(f"{x_final:1.20f} {math.exp(x_final):1.20f}")
    return state


def sweep(x_final: float, exact: bool, max_iter: int):
    print(f"{'dx':>8}  {'steps':>9}  {'passes/step':>11}  {'|y - e|':>10}")
    for dx in (1e-1, 1e-2, 1e-3, 1e-4, 1e-5, 1e-6):
        state = integrate(IterState(0.0, 1.0), dx, rhs, x_final,
                          exact=exact, max_iter=max_iter)
        err = abs(state.y - math.exp(x_final))
        print(f"{dx:8.1e}  {state.stats['step']:9d}  "
              f"{state.stats['picard'] / state.stats['step']:11.2f}  {err:10.3e}")


def scipy_reference(x_final: float):
    import numpy as np
    from scipy.integrate import solve_ivp

    sol = solve_ivp(lambda x, y: y, (0.0, x_final), np.array([1.0]),
                    method="DOP853", rtol=1e-13, atol=1e-15)
    return sol.y[0, -1]


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--dx", type=positive_float, default=1e-6,
                        help="fixed step size")
    parser.add_argument("--xfinal", type=float, default=1.0,
                        help="integration bound")
    parser.add_argument("--exact", action="store_true",
                        help="stop the corrector only on bit-identical iterates")
    parser.add_argument("--max-iter", type=int, default=100,
                        help="cap on corrector passes per step")
    parser.add_argument("--sweep", action="store_true",
                        help="report the error for dx = 1e-1 ... 1e-6")
    parser.add_argument("--scipy", action="store_true",
                        help="also print a SciPy DOP853 reference")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    if args.sweep:
        sweep(args.xfinal, args.exact, args.max_iter)
        return

    t_start = time.perf_counter()
    state = run_once(args.dx, args.xfinal, args.exact, args.max_iter)
    t_end = time.perf_counter()

    if args.scipy:
        print(f"{args.xfinal:1.20f} {scipy_reference(args.xfinal):1.20f}  (scipy)")

    print("\n--- results -------------------------------------------------")
    print(f"steps          : {state.stats['step']}")
    print(f"corrector      : {state.stats['picard']} passes")
    print(f"rhs calls      : {state.stats['fcall']}")
    print(f"|y - exp(x)|   : {abs(state.y - math.exp(args.xfinal)):.3e}")
    print(f"wall time      : {1e3*(t_end - t_start):.1f} ms")


if __name__ == "__main__":
    main()
