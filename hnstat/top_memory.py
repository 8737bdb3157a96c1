import heapq
import time
from collections import Counter
from hnstat.common.utils import read_records as extractor, make_window
from hnstat.common.blocks import window_filter, url_counter
from hnstat.common.logger import canonical_logger


def get_top_k(counters: Counter, k: int) -> list[tuple[str, int]]:
    """
    Returns the k most frequent (url, count) pairs, count descending.
    Equal counts are ordered by URL in reverse lexicographic order, so the
    whole ranking is simply (count, url) descending. Bounded heap of size k.
    """
    if k < 0:
        raise ValueError(f"k must be non-negative, got {k}")
    return heapq.nlargest(k, counters.items(), key=lambda x: (x[1], x[0]))


@canonical_logger(event_name="top_memory_execution")
def top_memory(
    file_path: str, n: int, start: int | None = None, end: int | None = None, ctx=None
) -> list[tuple[str, int]]:
    """
    Finds the n most frequent URLs in the inclusive window using a
    memory-efficient streaming pipeline (generator -> filter -> Counter -> heap).
    """
    if n < 0:
        raise ValueError(f"n must be non-negative, got {n}")
    window = make_window(start, end)
    if ctx:
        ctx.add_context(file_path=file_path, n=n, start=start, end=end)
        ctx.add_metric("malformed_lines", 0)
        if window.is_empty:
            ctx.register_error("empty_window", "start is after end, no record admitted")

    record_stream = window_filter(extractor(file_path, ctx=ctx), window)

    t0 = time.perf_counter()
    counter = url_counter(record_stream)
    if ctx:
        ctx.add_step("aggregate_counts", round((time.perf_counter() - t0) * 1000, 4))
        ctx.add_metric("distinct_urls", len(counter))

    t0 = time.perf_counter()
    result = get_top_k(counter, n)
    if ctx:
        ctx.add_step("get_top_n", round((time.perf_counter() - t0) * 1000, 4))
        ctx.add_metric("output_rows", len(result))

    return result
