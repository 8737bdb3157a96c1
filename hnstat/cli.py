"""hnstat CLI entry point (also runnable as `python -m hnstat.cli`).

Usage:
    hnstat distinct [--from TIMESTAMP] [--to TIMESTAMP] <INPUT_FILE>
    hnstat top <nb_top_queries> [--from TIMESTAMP] [--to TIMESTAMP] <INPUT_FILE>
"""
import argparse
import sys

from hnstat.common.logger import configure_logging
from hnstat.common.utils import InputUnavailable, parse_timestamp
from hnstat.distinct_memory import distinct_memory
from hnstat.distinct_parallel import distinct_parallel
from hnstat.distinct_time import distinct_time
from hnstat.top_memory import top_memory
from hnstat.top_parallel import top_parallel
from hnstat.top_time import top_time

EXIT_OK = 0
EXIT_INPUT_UNAVAILABLE = 1
# argparse exits with 2 on usage errors

funcs = {
    ("distinct", "memory"): distinct_memory,
    ("distinct", "time"): distinct_time,
    ("distinct", "parallel"): distinct_parallel,
    ("top", "memory"): top_memory,
    ("top", "time"): top_time,
    ("top", "parallel"): top_parallel,
}


def _timestamp(value: str) -> int:
    timestamp = parse_timestamp(value)
    if timestamp is None:
        raise argparse.ArgumentTypeError(
            f"invalid timestamp '{value}': expected an unsigned 64-bit integer"
        )
    return timestamp


def _count(value: str) -> int:
    if not value.isascii() or not value.isdigit():
        raise argparse.ArgumentTypeError(
            f"invalid count '{value}': expected a non-negative integer"
        )
    return int(value)


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--from", dest="start", type=_timestamp, default=None,
        help="Inclusive lower timestamp bound",
    )
    common.add_argument(
        "--to", dest="end", type=_timestamp, default=None,
        help="Inclusive upper timestamp bound",
    )
    common.add_argument(
        "--strategy", choices=["memory", "time", "parallel"], default="memory",
        help="Execution strategy (default: memory)",
    )
    common.add_argument(
        "--log-level", choices=["debug", "info", "warning", "error"],
        default="warning",
        help="Level of the JSON wide events written to stderr (default: warning)",
    )

    parser = argparse.ArgumentParser(
        prog="hnstat",
        description="Distinct and top-N URL statistics over a timestamped TSV log.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    distinct = subparsers.add_parser(
        "distinct", parents=[common], help="Count distinct URLs in the window."
    )
    distinct.add_argument("input", metavar="INPUT_FILE", help="Tab-separated log file")

    top = subparsers.add_parser(
        "top", parents=[common], help="List the most frequent URLs in the window."
    )
    top.add_argument(
        "nb_top_queries", type=_count, help="Number of URLs to list"
    )
    top.add_argument("input", metavar="INPUT_FILE", help="Tab-separated log file")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    func = funcs[(args.command, args.strategy)]
    try:
        if args.command == "distinct":
            print(func(args.input, start=args.start, end=args.end))
        else:
            for url, count in func(
                args.input, args.nb_top_queries, start=args.start, end=args.end
            ):
                print(f"{url} {count}")
    except InputUnavailable as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_INPUT_UNAVAILABLE

    return EXIT_OK


def entrypoint() -> None:
    sys.exit(main())


if __name__ == "__main__":
    entrypoint()
