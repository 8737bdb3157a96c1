import time
import polars as pl
from hnstat.common.utils import scan_tsv, valid_rows, malformed_expr, make_window
from hnstat.common.blocks import lazy_window_filter, lazy_url_counter
from hnstat.common.logger import canonical_logger


@canonical_logger(event_name="distinct_time_execution")
def distinct_time(
    file_path: str, start: int | None = None, end: int | None = None, ctx=None
) -> int:
    """
    Counts the distinct URLs in the inclusive window with a single Polars
    lazy query (scan -> filter -> group_by -> len).
    """
    window = make_window(start, end)
    if ctx:
        ctx.add_context(file_path=file_path, start=start, end=end)
        if window.is_empty:
            ctx.register_error("empty_window", "start is after end, no record admitted")

    # Orchestrated pipeline: both queries share the same scan
    t0 = time.perf_counter()
    lines = scan_tsv(file_path)
    query = (
        lines.pipe(valid_rows)
        .pipe(lazy_window_filter, window=window)
        .pipe(lazy_url_counter)
        .select(pl.len())
    )
    malformed_query = lines.select(malformed_expr)
    if ctx:
        ctx.add_step("build_query_plan", round((time.perf_counter() - t0) * 1000, 4))

    # SINGLE EXECUTION
    t0 = time.perf_counter()
    result, malformed = pl.collect_all([query, malformed_query])
    if ctx:
        ctx.add_step("execution_collect", round((time.perf_counter() - t0) * 1000, 4))
        ctx.add_metric("malformed_lines", malformed.item())
        ctx.add_metric("distinct_urls", result.item())

    return result.item()
