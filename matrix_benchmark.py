"""Benchmark harness comparing the multiplication strategies."""

import argparse
import json
import logging
import math
import os
import sys
import time as time_module
from dataclasses import asdict, dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import matplotlib.pyplot as plt
import psutil

from dense_matrix import Matrix
from matrix_multiplication import (
    multiply_pooled,
    multiply_sequential,
    multiply_threaded,
    setup_logging,
)

STRATEGY_SEQUENTIAL = "sequential"
STRATEGY_POOLED = "pooled"
STRATEGY_THREADED = "threaded"


def _default_thread_counts() -> List[int]:
    return [1, 2, 4, 8, psutil.cpu_count(logical=True) or 1]


# --- Configuration ---
@dataclass
class Config:
    """Configuration settings for a benchmark sweep.

    Attributes
    ----------
    matrix_sizes : List[int]
        Square matrix sizes to test
    thread_counts : List[int]
        Parallelism values measured for both parallel strategies
    repetitions : int
        Number of measured runs per variant, after one warm-up run
    fill_min : int
        Inclusive lower bound of the random fill
    fill_max : int
        Exclusive upper bound of the random fill
    seed : Optional[int]
        Seed for reproducible input matrices
    log_level : str
        Logging level (e.g., 'INFO', 'DEBUG')
    log_file : Optional[str]
        Optional log file path
    """

    matrix_sizes: List[int] = field(default_factory=lambda: [50, 100, 150])
    thread_counts: List[int] = field(default_factory=_default_thread_counts)
    repetitions: int = 3
    fill_min: int = 0
    fill_max: int = 100
    seed: Optional[int] = None
    log_level: str = "INFO"
    log_file: Optional[str] = None

    @classmethod
    def from_file(cls, filepath: str) -> "Config":
        """Load configuration from JSON file."""
        if not os.path.exists(filepath):
            return cls()
        with open(filepath, "r") as f:
            return cls(**json.load(f))

    def save(self, filepath: str):
        """Save configuration to JSON file."""
        with open(filepath, "w") as f:
            json.dump(asdict(self), f, indent=4)

    def validate(self) -> None:
        """Raise ValueError if the settings cannot drive a sweep."""
        if not self.matrix_sizes:
            raise ValueError("matrix_sizes must not be empty")
        if not self.thread_counts:
            raise ValueError("thread_counts must not be empty")
        if any(size < 1 for size in self.matrix_sizes):
            raise ValueError(f"Matrix sizes must be positive: {self.matrix_sizes}")
        if any(count < 1 for count in self.thread_counts):
            raise ValueError(f"Thread counts must be positive: {self.thread_counts}")
        if self.repetitions < 1:
            raise ValueError(f"repetitions must be positive, got {self.repetitions}")
        if self.fill_min >= self.fill_max:
            raise ValueError(f"Empty fill range: [{self.fill_min}, {self.fill_max})")


@dataclass
class BenchmarkResult:
    """Mean duration of one strategy at one size and thread count."""

    size: int
    strategy: str
    threads: Optional[int]
    duration_ms: int
    speedup: float


def measure(action: Callable[[], object], repetitions: int) -> int:
    """Return the mean wall-clock time of ``action`` in whole milliseconds.

    The action runs once untimed as a warm-up and then ``repetitions`` times
    under the timer. The mean is truncated to an integer.

    Parameters
    ----------
    action : Callable[[], object]
        Zero-argument callable; should behave identically on every call
    repetitions : int
        Number of timed runs

    Returns
    -------
    int
        Truncated mean duration in milliseconds
    """
    if repetitions < 1:
        raise ValueError(f"repetitions must be positive, got {repetitions}")

    action()

    total_ms = 0.0
    for _ in range(repetitions):
        start_time = time_module.perf_counter()
        action()
        total_ms += (time_module.perf_counter() - start_time) * 1000.0

    return int(total_ms // repetitions)


def speedup(baseline_ms: float, variant_ms: float) -> float:
    """Ratio of baseline to variant time; inf or nan when the variant took zero time."""
    if variant_ms == 0:
        return math.inf if baseline_ms > 0 else math.nan
    return baseline_ms / variant_ms


def generate_matrices(size: int, config: Config) -> Tuple[Matrix, Matrix]:
    """Create the pair of random ``size x size`` inputs shared by all variants."""
    seed_a = config.seed
    seed_b = None if config.seed is None else config.seed + 1
    logging.debug(f"Generating {size}x{size} random matrices (seed={config.seed})")
    a = Matrix(size, size).random_fill(config.fill_min, config.fill_max, seed=seed_a)
    b = Matrix(size, size).random_fill(config.fill_min, config.fill_max, seed=seed_b)
    return a, b


def run_sweep(
    config: Config, multipliers: Optional[Dict[str, Callable]] = None
) -> List[BenchmarkResult]:
    """Measure every strategy over the configured sizes and thread counts.

    Parameters
    ----------
    config : Config
        Sweep settings
    multipliers : Optional[Dict[str, Callable]]
        Replacement callables keyed by strategy name

    Returns
    -------
    List[BenchmarkResult]
        Per size: the sequential baseline, then the pooled results for each
        thread count, then the threaded results for each thread count
    """
    config.validate()
    strategies = {
        STRATEGY_SEQUENTIAL: multiply_sequential,
        STRATEGY_POOLED: multiply_pooled,
        STRATEGY_THREADED: multiply_threaded,
    }
    if multipliers:
        strategies.update(multipliers)

    results = []
    for size in config.matrix_sizes:
        logging.info(f"Testing for matrix size: {size}x{size}")
        a, b = generate_matrices(size, config)

        sequential = strategies[STRATEGY_SEQUENTIAL]
        baseline_ms = measure(lambda: sequential(a, b), config.repetitions)
        results.append(BenchmarkResult(size, STRATEGY_SEQUENTIAL, None, baseline_ms, 1.0))
        logging.info(f"Sequential time: {baseline_ms} ms")

        for strategy in (STRATEGY_POOLED, STRATEGY_THREADED):
            multiply = strategies[strategy]
            for threads in config.thread_counts:
                variant_ms = measure(lambda: multiply(a, b, threads), config.repetitions)
                ratio = speedup(baseline_ms, variant_ms)
                results.append(BenchmarkResult(size, strategy, threads, variant_ms, ratio))
                logging.info(
                    f"{strategy} ({threads} threads): {variant_ms} ms | Speedup: {ratio:.2f}x"
                )

    return results


def format_report(results: Sequence[BenchmarkResult]) -> str:
    """Render sweep results as console text grouped by matrix size."""
    labels = {STRATEGY_POOLED: "Parallel", STRATEGY_THREADED: "Thread"}
    headers = {
        STRATEGY_POOLED: "Using thread pool:",
        STRATEGY_THREADED: "Using Thread class:",
    }

    lines = ["Matrix Multiplication Performance Test", "=" * 37]
    current_size = None
    current_strategy = None
    for result in results:
        if result.size != current_size:
            current_size = result.size
            current_strategy = None
            lines += ["", f"Testing for matrix size: {result.size}x{result.size}", "-" * 37]
        if result.strategy == STRATEGY_SEQUENTIAL:
            lines.append(f"Sequential time: {result.duration_ms} ms")
            continue
        if result.strategy != current_strategy:
            current_strategy = result.strategy
            lines += ["", headers.get(result.strategy, f"Using {result.strategy}:")]
        label = labels.get(result.strategy, result.strategy)
        lines.append(
            f"{label} ({result.threads} threads): {result.duration_ms} ms"
            f" | Speedup: {result.speedup:.2f}x"
        )
    return "\n".join(lines)


def plot_speedups(results: Sequence[BenchmarkResult]):
    """Plot speedup against thread count for each size and parallel strategy.

    Returns
    -------
    matplotlib.figure.Figure
        The figure; the caller decides whether to show it
    """
    fig, ax = plt.subplots(figsize=(10, 6))

    series: Dict[tuple, List[BenchmarkResult]] = {}
    for result in results:
        if result.strategy == STRATEGY_SEQUENTIAL:
            continue
        series.setdefault((result.strategy, result.size), []).append(result)

    for (strategy, size), points in series.items():
        points = sorted(points, key=lambda r: r.threads)
        finite = [p for p in points if math.isfinite(p.speedup)]
        if not finite:
            continue
        ax.plot(
            [p.threads for p in finite],
            [p.speedup for p in finite],
            marker="o",
            label=f"{strategy} ({size}x{size})",
        )

    ax.set_xlabel("Threads")
    ax.set_ylabel("Speedup (relative to sequential)")
    ax.set_title("Speedup Comparison")
    ax.grid(True)
    ax.axhline(y=1, color="k", linestyle="--", alpha=0.3)
    if ax.get_legend_handles_labels()[0]:
        ax.legend(loc="upper left")
    fig.tight_layout()
    return fig


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Benchmark sequential, thread-pool and thread-partitioned matrix multiplication."
    )
    parser.add_argument("--config", default="config.json", help="JSON configuration file")
    parser.add_argument("--sizes", type=int, nargs="+", help="matrix sizes to test")
    parser.add_argument("--threads", type=int, nargs="+", help="thread counts to test")
    parser.add_argument("--repetitions", type=int, help="measured runs per variant")
    parser.add_argument("--seed", type=int, help="seed for the random input matrices")
    parser.add_argument("--log-level", help="logging level (e.g. DEBUG, INFO)")
    parser.add_argument("--plot", action="store_true", help="show a speedup plot")
    return parser.parse_args(argv)


# --- Main Execution ---
def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the benchmark sweep and print the report."""
    args = parse_args(argv)
    try:
        config = Config.from_file(args.config)
        if args.sizes:
            config.matrix_sizes = args.sizes
        if args.threads:
            config.thread_counts = args.threads
        if args.repetitions is not None:
            config.repetitions = args.repetitions
        if args.seed is not None:
            config.seed = args.seed
        if args.log_level:
            config.log_level = args.log_level

        setup_logging(config.log_level, config.log_file)
        results = run_sweep(config)
        print(format_report(results))

        if args.plot:
            plot_speedups(results)
            plt.show()

    except Exception as e:
        logging.error(f"Error in main: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
