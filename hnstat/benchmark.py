import sys
import time
import argparse
import functools
from typing import Callable, Any
from memory_profiler import memory_usage

from hnstat.distinct_memory import distinct_memory
from hnstat.distinct_time import distinct_time
from hnstat.distinct_parallel import distinct_parallel
from hnstat.top_memory import top_memory
from hnstat.top_time import top_time
from hnstat.top_parallel import top_parallel


def measure_time(func: Callable, *args, **kwargs) -> tuple[float, Any]:
    """Measures wall time of one call and returns (seconds, result)."""
    start_time = time.perf_counter()
    result = func(*args, **kwargs)
    end_time = time.perf_counter()
    return end_time - start_time, result


def measure_memory(func: Callable, *args, **kwargs) -> tuple[float, Any]:
    """Measures peak memory (MB) of one call and returns (peak, result)."""
    mem_samples, result = memory_usage((func, args, kwargs), interval=0.1, retval=True)
    return max(mem_samples), result


def profile_performance(func):
    """
    Runs func once under memory sampling, timing it from inside so both
    figures come from the same execution.
    Returns (peak_mb, seconds, result).
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        def time_wrapped_func():
            return measure_time(func, *args, **kwargs)

        peak_mem, (duration, result) = measure_memory(time_wrapped_func)
        return peak_mem, duration, result

    return wrapper


def run_benchmark(file_path: str, n: int = 10, start=None, end=None) -> list[dict]:
    """Runs every strategy of both queries on file_path. One row per (query, strategy)."""
    scenarios = [
        ("distinct", "memory", distinct_memory, (file_path,)),
        ("distinct", "time", distinct_time, (file_path,)),
        ("distinct", "parallel", distinct_parallel, (file_path,)),
        ("top", "memory", top_memory, (file_path, n)),
        ("top", "time", top_time, (file_path, n)),
        ("top", "parallel", top_parallel, (file_path, n)),
    ]
    rows = []
    for query, strategy, func, args in scenarios:
        peak_mem, duration, result = profile_performance(func)(
            *args, start=start, end=end
        )
        rows.append(
            {
                "query": query,
                "strategy": strategy,
                "seconds": duration,
                "peak_mb": peak_mem,
                "result": result,
            }
        )
    return rows


def strategies_agree(rows: list[dict]) -> bool:
    """True when every strategy produced the same result for each query."""
    by_query = {}
    for row in rows:
        by_query.setdefault(row["query"], []).append(row["result"])
    return all(all(r == results[0] for r in results) for results in by_query.values())


def format_report(rows: list[dict]) -> str:
    lines = [f"{'query':<10}{'strategy':<10}{'time (s)':>12}{'memory (MB)':>14}"]
    for row in rows:
        lines.append(
            f"{row['query']:<10}{row['strategy']:<10}"
            f"{row['seconds']:>12.4f}{row['peak_mb']:>14.2f}"
        )
    lines.append(f"strategies agree: {'yes' if strategies_agree(rows) else 'NO'}")
    return "\n".join(lines)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="hnstat-benchmark",
        description="Compare time and memory of every hnstat strategy on one file.",
    )
    parser.add_argument("input", metavar="INPUT_FILE")
    parser.add_argument("--n", type=int, default=10, help="Top-N size (default: 10)")
    args = parser.parse_args(argv)

    rows = run_benchmark(args.input, n=args.n)
    print(format_report(rows))
    return 0 if strategies_agree(rows) else 1


if __name__ == "__main__":
    sys.exit(main())
