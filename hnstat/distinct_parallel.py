import time
from hnstat.common.utils import read_chunks as extractor, make_window
from hnstat.common.blocks import sharded_counter
from hnstat.common.logger import canonical_logger


@canonical_logger(event_name="distinct_parallel_execution")
def distinct_parallel(
    file_path: str,
    start: int | None = None,
    end: int | None = None,
    max_workers: int | None = None,
    ctx=None,
) -> int:
    """
    Counts the distinct URLs in the inclusive window by aggregating line
    chunks in a process pool and merging the per-chunk Counters.
    """
    window = make_window(start, end)
    if ctx:
        ctx.add_context(file_path=file_path, start=start, end=end)
        if window.is_empty:
            ctx.register_error("empty_window", "start is after end, no record admitted")

    t0 = time.perf_counter()
    counter, malformed = sharded_counter(extractor(file_path), window, max_workers)
    if ctx:
        ctx.add_step("sharded_aggregate", round((time.perf_counter() - t0) * 1000, 4))
        ctx.add_metric("malformed_lines", malformed)
        ctx.add_metric("distinct_urls", len(counter))

    return len(counter)
