import re
from collections.abc import Iterable, Iterator
from typing import Annotated

import msgspec
import polars as pl


U64_MAX = 2**64 - 1
CHUNK_SIZE = 5000

# msgspec integer constraints are int64, the u64 ceiling is checked in make_window
Timestamp = Annotated[int, msgspec.Meta(ge=0)]

# Optional "+" then ASCII digits, nothing else (no whitespace, no "-")
TIMESTAMP_PATTERN = r"^\+?[0-9]+$"
_timestamp_re = re.compile(TIMESTAMP_PATTERN)


# --- 1. ENTITIES ---


class InputUnavailable(Exception):
    """The input source cannot be opened or read at all."""

    def __init__(self, file_path: str, reason: str):
        super().__init__(f"cannot read input file '{file_path}': {reason}")
        self.file_path = file_path
        self.reason = reason


class Record(msgspec.Struct, frozen=True):
    timestamp: int
    url: str


class Window(msgspec.Struct, frozen=True):
    """Inclusive timestamp range; a missing bound is unbounded on that side."""

    start: Timestamp | None = None
    end: Timestamp | None = None

    def contains(self, timestamp: int) -> bool:
        return (self.start is None or timestamp >= self.start) and (
            self.end is None or timestamp <= self.end
        )

    @property
    def is_empty(self) -> bool:
        return self.start is not None and self.end is not None and self.start > self.end


def make_window(start: int | None = None, end: int | None = None) -> Window:
    """Builds a validated Window. Raises msgspec.ValidationError on out-of-range bounds."""
    window = msgspec.convert({"start": start, "end": end}, type=Window)
    for name, bound in (("start", window.start), ("end", window.end)):
        if bound is not None and bound > U64_MAX:
            raise msgspec.ValidationError(f"Expected `int` <= {U64_MAX} - at `$.{name}`")
    return window


# --- 2. LINE PARSING ---


def parse_timestamp(value: str) -> int | None:
    if not _timestamp_re.fullmatch(value):
        return None
    timestamp = int(value)
    return timestamp if timestamp <= U64_MAX else None


def parse_line(line: bytes) -> Record | None:
    """
    Parses one raw TSV line into a Record. Field 0 is the timestamp, field 1 the
    URL taken verbatim; further fields are ignored. Returns None when malformed
    (undecodable bytes, fewer than two fields, empty URL, invalid timestamp).
    """
    try:
        text = line.decode("utf-8")
    except UnicodeDecodeError:
        return None

    fields = text.rstrip("\r\n").split("\t", 2)
    if len(fields) < 2 or not fields[1]:
        return None

    timestamp = parse_timestamp(fields[0])
    if timestamp is None:
        return None
    return Record(timestamp=timestamp, url=fields[1])


# --- 3. READERS ---


def _open_input(file_path: str):
    try:
        return open(file_path, "rb")
    except OSError as e:
        raise InputUnavailable(file_path, e.strerror or str(e)) from e


def ensure_readable(file_path: str) -> None:
    """Fails fast with InputUnavailable for readers that open the file lazily."""
    _open_input(file_path).close()


def read_records(file_path: str, ctx=None) -> Iterator[Record]:
    """
    Lazy generator over the valid records of a TSV file. Malformed lines are
    dropped (and counted in ctx when given). The file is closed on exhaustion,
    on early stop and on read failure.
    """
    file_obj = _open_input(file_path)
    try:
        for line in file_obj:
            record = parse_line(line)
            if record is None:
                if ctx:
                    ctx.increment_metric("malformed_lines")
                continue
            yield record
    finally:
        file_obj.close()


def read_chunks(file_path: str, chunk_size: int = CHUNK_SIZE) -> Iterable[list[bytes]]:
    """Yields raw lines in blocks of chunk_size for sharded aggregation."""
    with _open_input(file_path) as f:
        chunk = []
        for line in f:
            chunk.append(line)
            if len(chunk) >= chunk_size:
                yield chunk
                chunk = []
        if chunk:
            yield chunk


# --- 4. POLARS SCAN ---

# One column per physical line; tabs are split in the query so the shape of
# any single line (blank, one field, extra fields) never changes the schema.
LINE_SEPARATOR = "\x1f"

line_schema = {"line": pl.String}

malformed_expr = (
    (pl.col("timestamp").is_null() | pl.col("url").is_null())
    .sum()
    .alias("malformed_lines")
)


def scan_tsv(file_path: str) -> pl.LazyFrame:
    """
    Lazy line scan parsed into timestamp (UInt64) and url (String) columns.
    Malformed lines are kept with a null timestamp or url, so they can be counted.
    """
    ensure_readable(file_path)
    fields = pl.col("fields")
    ts = fields.struct.field("field_0")
    url = fields.struct.field("field_1")
    return (
        pl.scan_csv(
            file_path,
            separator=LINE_SEPARATOR,
            has_header=False,
            schema=line_schema,
            quote_char=None,
            truncate_ragged_lines=True,
            raise_if_empty=False,
            encoding="utf8-lossy",
        )
        .select(
            pl.col("line")
            .str.strip_chars_end("\r\n")
            .str.splitn("\t", 3)
            .alias("fields")
        )
        .select(
            pl.when(ts.str.contains(TIMESTAMP_PATTERN))
            .then(ts.str.strip_prefix("+").cast(pl.UInt64, strict=False))
            .alias("timestamp"),
            pl.when(url.str.len_bytes() > 0).then(url).alias("url"),
        )
    )


valid_rows = lambda lf: lf.filter(
    pl.col("timestamp").is_not_null() & pl.col("url").is_not_null()
)

