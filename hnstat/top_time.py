import time
import polars as pl
from hnstat.common.utils import scan_tsv, valid_rows, malformed_expr, make_window
from hnstat.common.blocks import lazy_window_filter, lazy_url_counter
from hnstat.common.logger import canonical_logger

# Polars row counts are signed 64-bit; any larger k already means "all rows"
MAX_ROWS = 2**63 - 1

# Count descending, then URL descending (reverse lexicographic tie-break)
get_top_k = lambda lf, k: lf.sort(["len", "url"], descending=[True, True]).head(
    min(k, MAX_ROWS)
)


@canonical_logger(event_name="top_time_execution")
def top_time(
    file_path: str, n: int, start: int | None = None, end: int | None = None, ctx=None
) -> list[tuple[str, int]]:
    """
    Finds the n most frequent URLs in the inclusive window.
    The whole pipeline is one Polars LazyFrame plan executed by a single collect.
    """
    if n < 0:
        raise ValueError(f"n must be non-negative, got {n}")
    window = make_window(start, end)
    if ctx:
        ctx.add_context(file_path=file_path, n=n, start=start, end=end)
        if window.is_empty:
            ctx.register_error("empty_window", "start is after end, no record admitted")

    # Orchestrated pipeline: the three queries share the same scan and counts
    t0 = time.perf_counter()
    lines = scan_tsv(file_path)
    counts = (
        lines.pipe(valid_rows)
        .pipe(lazy_window_filter, window=window)
        .pipe(lazy_url_counter)
    )
    query = counts.pipe(get_top_k, k=n)
    if ctx:
        ctx.add_step("build_query_plan", round((time.perf_counter() - t0) * 1000, 4))

    # SINGLE EXECUTION
    t0 = time.perf_counter()
    result, distinct, malformed = pl.collect_all(
        [query, counts.select(pl.len()), lines.select(malformed_expr)]
    )
    if ctx:
        ctx.add_step("execution_collect", round((time.perf_counter() - t0) * 1000, 4))
        ctx.add_metric("malformed_lines", malformed.item())
        ctx.add_metric("distinct_urls", distinct.item())
        ctx.add_metric("output_rows", result.height)

    return list(result.iter_rows())
