"""
main.py - Command-Line Entry Point
===================================
Runs the mass-flow simulation without a display and reports on it.

Usage:
    python main.py                           # Headless run, spike pattern
    python main.py --pattern block --pour    # Block of fluid plus a running tap
    python main.py --mode benchmark          # Per-pass timing breakdown
"""

import argparse
import numpy as np

PATTERNS = ["spike", "block", "corner", "random"]


def make_pattern(name: str, width: int = 50, height: int = 50, rng_seed: int = 0) -> np.ndarray:
    """Initial mass fields for demos and benchmarks, shape (height, width)."""
    field = np.zeros((height, width), dtype=np.uint8)
    cx, cy = width // 2, height // 2

    if name == "spike":
        field[cy, cx] = 255
    elif name == "block":
        field[cy - 5:cy + 5, cx - 5:cx + 5] = 200
    elif name == "corner":
        field[:3, :3] = 255
    elif name == "random":
        rng = np.random.default_rng(rng_seed)
        field[...] = rng.integers(0, 256, size=(height, width), dtype=np.uint8)
    else:
        raise ValueError(f"Unknown pattern: {name}. Use one of {PATTERNS}.")
    return field


def run_headless(pattern: str = "spike", frames: int = 100, pour: bool = False,
                 max_exchange: int = 32, rng_seed: int = 0):
    """Run simulation without display, printing stats every 10 frames."""
    from massflow import MassFlowSimulation

    sim = MassFlowSimulation(seed=make_pattern(pattern, rng_seed=rng_seed),
                             max_exchange=max_exchange)
    tap_x = sim.width // 2

    print(f"\nHeadless simulation | pattern={pattern} | {frames} frames")
    print(f"{'─'*60}")

    for f in range(frames):
        if pour:
            sim.pour(tap_x, 1, 40, radius=1)

        sim.step()
        metrics = sim.last_metrics

        if f % 10 == 0:
            print(f"  Frame {f:03d} | {metrics['total_ms']:6.2f}ms | "
                  f"faces={metrics['moving_faces']:4d} | "
                  f"moved={metrics['moved']:5d} | "
                  f"mass={metrics['total_mass']}")

    sim.print_status()
    return sim


def run_benchmark(frames: int = 200, max_exchange: int = 32, rng_seed: int = 0):
    """Detailed timing of the two passes on a busy (random) field."""
    from massflow import MassFlowSimulation

    print(f"\n{'='*60}")
    print(f"  STEP BENCHMARK | random field | {frames} frames")
    print(f"{'='*60}")

    sim = MassFlowSimulation(seed=make_pattern("random", rng_seed=rng_seed),
                             max_exchange=max_exchange)

    # Warm up
    sim.run(5)

    logs = []
    for _ in range(frames):
        sim.step()
        logs.append(sim.last_metrics)

    keys = ["solve_ms", "transport_ms", "total_ms"]
    print(f"\n{'Pass':<20} {'Mean':>8} {'Min':>8} {'Max':>8}")
    print(f"{'─'*50}")
    for k in keys:
        vals = [m[k] for m in logs]
        print(f"  {k:<18} {np.mean(vals):>6.3f}ms {np.min(vals):>6.3f}ms {np.max(vals):>6.3f}ms")

    total_vals = [m["total_ms"] for m in logs]
    print(f"\n{'─'*50}")
    print(f"  Steps per second: {1000/np.mean(total_vals):.0f}")
    return logs


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Byte-quantized grid fluid simulation")
    parser.add_argument(
        "--mode", choices=["headless", "benchmark"],
        default="headless",
        help="Run mode (default: headless)"
    )
    parser.add_argument("--pattern", choices=PATTERNS, default="spike",
                        help="Initial mass field (default: spike)")
    parser.add_argument("--frames", type=int, default=100, help="Number of frames")
    parser.add_argument("--pour", action="store_true", help="Pour at the top centre each frame")
    parser.add_argument("--max-exchange", type=int, default=32,
                        help="Max mass moved across one face per step (default: 32)")
    parser.add_argument("--seed", type=int, default=0, help="RNG seed for the random pattern")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    if args.mode == "headless":
        run_headless(pattern=args.pattern, frames=args.frames, pour=args.pour,
                     max_exchange=args.max_exchange, rng_seed=args.seed)
    elif args.mode == "benchmark":
        run_benchmark(frames=args.frames, max_exchange=args.max_exchange,
                      rng_seed=args.seed)


if __name__ == "__main__":
    main()
