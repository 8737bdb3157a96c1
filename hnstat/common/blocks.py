import multiprocessing
from functools import partial, reduce
from concurrent.futures import ProcessPoolExecutor
from collections import Counter
from collections.abc import Iterable
import polars as pl
from hnstat.common.utils import Window, parse_line


# Modular Functional Blocks shared by the distinct and top queries


# --- Memory (streaming generators + Counter) ---

window_filter = lambda records, window: filter(
    lambda r: window.contains(r.timestamp), records
)


url_counter = lambda records: reduce(
    lambda acc, r: (acc.update((r.url,)), acc)[1],
    records,
    Counter(),
)


def chunk_counter(chunk: list[bytes], window: Window) -> tuple[Counter, int]:
    """Worker: parses, filters and counts one block of raw lines. Returns (counts, malformed)."""
    counts = Counter()
    malformed = 0
    for line in chunk:
        record = parse_line(line)
        if record is None:
            malformed += 1
        elif window.contains(record.timestamp):
            counts[record.url] += 1
    return counts, malformed


def merge_counters(counters: Iterable[Counter]) -> Counter:
    """Merges per-shard frequency tables; per-URL addition is associative and commutative."""
    return reduce(lambda acc, c: (acc.update(c), acc)[1], counters, Counter())


# --- Time (polars LazyFrames) ---


def window_expr(window: Window) -> pl.Expr:
    """Inclusive bounds as a polars predicate; no bounds admits every row."""
    ts = pl.col("timestamp")
    conditions = []
    if window.start is not None:
        conditions.append(ts >= pl.lit(window.start, dtype=pl.UInt64))
    if window.end is not None:
        conditions.append(ts <= pl.lit(window.end, dtype=pl.UInt64))
    return pl.all_horizontal(conditions) if conditions else pl.lit(True)


lazy_window_filter = lambda lf, window: lf.filter(window_expr(window))

lazy_url_counter = lambda lf: lf.group_by("url").len()


def sharded_counter(
    chunks: Iterable[list[bytes]], window: Window, max_workers: int | None = None
) -> tuple[Counter, int]:
    """Counts chunks in worker processes and merges the shards. Returns (counts, malformed)."""
    # spawn: forking a process that has started the polars thread pool can deadlock
    with ProcessPoolExecutor(
        max_workers=max_workers, mp_context=multiprocessing.get_context("spawn")
    ) as executor:
        shards = list(executor.map(partial(chunk_counter, window=window), chunks))
    return merge_counters(c for c, _ in shards), sum(m for _, m in shards)
