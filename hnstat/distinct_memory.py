import time
from hnstat.common.utils import read_records as extractor, make_window
from hnstat.common.blocks import window_filter, url_counter
from hnstat.common.logger import canonical_logger


@canonical_logger(event_name="distinct_memory_execution")
def distinct_memory(
    file_path: str, start: int | None = None, end: int | None = None, ctx=None
) -> int:
    """
    Counts the distinct URLs whose timestamp lies in the inclusive window.
    Streams records through a lazy filter into a Counter; memory grows with
    the number of distinct URLs only.
    """
    window = make_window(start, end)
    if ctx:
        ctx.add_context(file_path=file_path, start=start, end=end)
        ctx.add_metric("malformed_lines", 0)
        if window.is_empty:
            ctx.register_error("empty_window", "start is after end, no record admitted")

    # Lazy: nothing is read until the counter consumes the stream
    record_stream = window_filter(extractor(file_path, ctx=ctx), window)

    t0 = time.perf_counter()
    counter = url_counter(record_stream)
    if ctx:
        ctx.add_step("aggregate_counts", round((time.perf_counter() - t0) * 1000, 4))
        ctx.add_metric("distinct_urls", len(counter))

    return len(counter)
