import pytest
import polars as pl
from hnstat.common.logger import configure_logging


@pytest.fixture(autouse=True)
def reset_logging():
    # CLI tests reconfigure the level; every test starts from the default
    configure_logging()
    yield
    configure_logging()


@pytest.fixture
def tsv_factory(tmp_path):
    def _create(filename, content):
        p = tmp_path / filename
        if isinstance(content, list):
            content = "".join(f"{ts}\t{url}\n" for ts, url in content)
        p.write_bytes(content.encode("utf-8") if isinstance(content, str) else content)
        return str(p)

    return _create


@pytest.fixture
def frame_factory():
    """Builds a LazyFrame with the scan's column types from in-memory records."""

    def _create(records):
        rows = list(records)
        return pl.LazyFrame(
            {
                "timestamp": [r.timestamp for r in rows],
                "url": [r.url for r in rows],
            },
            schema={"timestamp": pl.UInt64, "url": pl.String},
        )

    return _create
