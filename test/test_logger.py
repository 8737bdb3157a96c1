import pytest
from structlog.testing import capture_logs
from hnstat.common.logger import WideEventContext, canonical_logger
from hnstat.common.utils import InputUnavailable
from hnstat.distinct_memory import distinct_memory
from hnstat.distinct_time import distinct_time
from hnstat.top_time import top_time


def top_time_n3(file_path):
    return top_time(file_path, 3)


def test_wide_event_success(tsv_factory):
    file_path = tsv_factory("input.tsv", "10\tA\nbad\n20\tB\n20\tA\n")

    with capture_logs() as logs:
        assert distinct_memory(file_path, start=10) == 2

    assert len(logs) == 1
    event = logs[0]
    assert event["event"] == "distinct_memory_execution"
    assert event["status"] == "success"
    assert event["log_level"] == "info"
    assert event["context"]["function"] == "distinct_memory"
    assert event["context"]["start"] == 10
    assert event["metrics"] == {"malformed_lines": 1, "distinct_urls": 2}
    assert "aggregate_counts" in event["steps"]


def test_wide_event_records_empty_window(tsv_factory):
    file_path = tsv_factory("input.tsv", "10\tA\n")

    with capture_logs() as logs:
        assert top_time(file_path, 3, start=20, end=10) == []

    assert logs[0]["non_fatal_errors"][0]["type"] == "empty_window"
    assert logs[0]["metrics"]["output_rows"] == 0


def test_wide_event_failure(tmp_path):
    with capture_logs() as logs:
        with pytest.raises(InputUnavailable):
            distinct_memory(str(tmp_path / "missing.tsv"))

    assert logs[0]["status"] == "failure"
    assert logs[0]["log_level"] == "error"
    assert "missing.tsv" in logs[0]["failure_reason"]
    assert "InputUnavailable" in logs[0]["stack_trace"]


def test_canonical_logger_injects_context():
    @canonical_logger(event_name="sample")
    def sample_query(ctx=None):
        assert isinstance(ctx, WideEventContext)
        ctx.add_metric("answer", 42)
        ctx.increment_metric("hits")
        ctx.increment_metric("hits", 2)
        return "ok"

    with capture_logs() as logs:
        assert sample_query() == "ok"

    assert logs[0]["metrics"] == {"answer": 42, "hits": 3}


@pytest.mark.parametrize("func_impl", [distinct_time, top_time_n3])
def test_time_strategy_reports_malformed_and_distinct(tsv_factory, func_impl):
    file_path = tsv_factory("input.tsv", "10\tA\tx\nbad\n20\tB\n-1\tC\n20\tA\n")

    with capture_logs() as logs:
        func_impl(file_path)

    metrics = logs[0]["metrics"]
    assert metrics["malformed_lines"] == 2
    assert metrics["distinct_urls"] == 2


def test_context_keeps_integers_beyond_64_bits_serializable():
    ctx = WideEventContext()
    ctx.add_context(n=2**70, start=2**64 - 1, end=None)
    assert ctx.extra_context == {"n": str(2**70), "start": 2**64 - 1, "end": None}
