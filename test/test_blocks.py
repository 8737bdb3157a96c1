import pytest
from collections import Counter
from hnstat.common.utils import Record, Window
from hnstat.common.blocks import (
    chunk_counter,
    lazy_url_counter,
    lazy_window_filter,
    merge_counters,
    sharded_counter,
    url_counter,
    window_filter,
)

RECORDS = [Record(10, "A"), Record(20, "B"), Record(20, "A"), Record(30, "C")]

# --- 1. Configuration & Scenarios ---

TARGET_FUNCS = [
    # Memory (Functional)
    ("mem_window_filter", lambda recs, w: window_filter(recs, w)),
    ("mem_url_counter", lambda recs, w: url_counter(window_filter(recs, w))),
    # Time (Polars)
    ("time_window_filter", lambda lf, w: lazy_window_filter(lf, w)),
    ("time_url_counter", lambda lf, w: lazy_url_counter(lazy_window_filter(lf, w))),
]

TEST_SCENARIOS = {
    "no_window": {
        "window": Window(),
        "validators": {
            "mem_window_filter": lambda res: len(list(res)) == 4,
            "mem_url_counter": lambda res: res == Counter({"A": 2, "B": 1, "C": 1}),
            "time_window_filter": lambda res: res.collect().height == 4,
            "time_url_counter": lambda res: dict(res.collect().rows())
            == {"A": 2, "B": 1, "C": 1},
        },
    },
    "inclusive_bounds": {
        "window": Window(start=20, end=30),
        "validators": {
            "mem_window_filter": lambda res: [r.timestamp for r in res] == [20, 20, 30],
            "mem_url_counter": lambda res: res == Counter({"A": 1, "B": 1, "C": 1}),
            "time_window_filter": lambda res: res.collect()["timestamp"].to_list()
            == [20, 20, 30],
            "time_url_counter": lambda res: res.collect().height == 3,
        },
    },
    "one_unit_outside": {
        "window": Window(start=11, end=29),
        "validators": {
            "mem_window_filter": lambda res: [r.url for r in res] == ["B", "A"],
            "mem_url_counter": lambda res: res == Counter({"A": 1, "B": 1}),
            "time_window_filter": lambda res: res.collect()["url"].to_list()
            == ["B", "A"],
            "time_url_counter": lambda res: res.collect().height == 2,
        },
    },
    "inverted_window": {
        "window": Window(start=30, end=10),
        "validators": {
            "mem_window_filter": lambda res: list(res) == [],
            "mem_url_counter": lambda res: res == Counter(),
            "time_window_filter": lambda res: res.collect().height == 0,
            "time_url_counter": lambda res: res.collect().height == 0,
        },
    },
}

# --- 2. The Driver Test Function ---


@pytest.mark.parametrize("func_name, func_impl", TARGET_FUNCS)
@pytest.mark.parametrize("scenario_name", TEST_SCENARIOS.keys())
def test_blocks_engine(frame_factory, func_name, func_impl, scenario_name):
    config = TEST_SCENARIOS[scenario_name]
    validator = config["validators"].get(func_name)

    # Memory blocks take a record stream, time blocks a LazyFrame
    source = frame_factory(RECORDS) if func_name.startswith("time") else iter(RECORDS)
    result = func_impl(source, config["window"])

    assert validator(result), f"Validator failed for {func_name} in {scenario_name}"


# --- 3. Focused cases ---


def test_window_filter_is_lazy():
    consumed = []

    def source():
        for r in RECORDS:
            consumed.append(r)
            yield r

    stream = window_filter(source(), Window(start=20))
    assert consumed == []
    assert next(stream) == Record(20, "B")
    assert len(consumed) == 2


def test_chunk_counter_filters_and_counts_malformed():
    chunk = [b"10\tA\n", b"bad line\n", b"20\tA\n", b"30\tB\n"]
    counts, malformed = chunk_counter(chunk, Window(end=20))
    assert counts == Counter({"A": 2})
    assert malformed == 1


def test_merge_counters_adds_per_url():
    merged = merge_counters([Counter({"A": 1, "B": 2}), Counter({"A": 3}), Counter()])
    assert merged == Counter({"A": 4, "B": 2})


def test_merge_counters_is_order_independent():
    shards = [Counter({"A": 1}), Counter({"B": 2, "A": 1}), Counter({"C": 5})]
    assert merge_counters(shards) == merge_counters(reversed(shards))


def test_sharded_counter_matches_single_pass():
    lines = [f"{ts}\tu{ts % 7}\n".encode() for ts in range(100)] + [b"oops\n"]
    chunks = [lines[i : i + 9] for i in range(0, len(lines), 9)]
    window = Window(start=10, end=89)

    counts, malformed = sharded_counter(chunks, window, max_workers=2)
    expected, _ = chunk_counter(lines, window)

    assert counts == expected
    assert malformed == 1
