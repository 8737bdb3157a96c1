import time
from hnstat.common.utils import read_chunks as extractor, make_window
from hnstat.common.blocks import sharded_counter
from hnstat.common.logger import canonical_logger
from hnstat.top_memory import get_top_k


@canonical_logger(event_name="top_parallel_execution")
def top_parallel(
    file_path: str,
    n: int,
    start: int | None = None,
    end: int | None = None,
    max_workers: int | None = None,
    ctx=None,
) -> list[tuple[str, int]]:
    """
    Finds the n most frequent URLs in the inclusive window. Chunks are counted
    in worker processes, merged by per-URL addition, then ranked.
    """
    if n < 0:
        raise ValueError(f"n must be non-negative, got {n}")
    window = make_window(start, end)
    if ctx:
        ctx.add_context(file_path=file_path, n=n, start=start, end=end)
        if window.is_empty:
            ctx.register_error("empty_window", "start is after end, no record admitted")

    t0 = time.perf_counter()
    counter, malformed = sharded_counter(extractor(file_path), window, max_workers)
    if ctx:
        ctx.add_step("sharded_aggregate", round((time.perf_counter() - t0) * 1000, 4))
        ctx.add_metric("malformed_lines", malformed)
        ctx.add_metric("distinct_urls", len(counter))

    t0 = time.perf_counter()
    result = get_top_k(counter, n)
    if ctx:
        ctx.add_step("get_top_n", round((time.perf_counter() - t0) * 1000, 4))
        ctx.add_metric("output_rows", len(result))

    return result
