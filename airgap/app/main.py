import argparse
import logging
import sys
from typing import Sequence

from ..domain.tolerance import ComparisonRule
from ..infra.loader import load_any, probe_schema_for
from ..shared.errors import FileRoutingError, ProbeDataError
from ..usecases.pipeline import PipelineResult, categorize_files, run_pipeline
from ..usecases.recompute_metrics import FilterConfig, aggregate_stats
from .logging_setup import setup_logging


log = logging.getLogger(__name__)


def run_files(paths: Sequence[str]) -> PipelineResult:
    routing = categorize_files(paths)
    probe_book = load_any(routing.probe)
    fixture_books = [load_any(p) for p in routing.fixtures]
    return run_pipeline(probe_book, fixture_books, schema=probe_schema_for(routing.probe))


def parse_rule(text: str) -> ComparisonRule:
    """'N,O:P:0.2' -> |N| или |O| >= |P| + 0.2"""
    try:
        left, right, margin = text.split(":")
    except ValueError:
        raise argparse.ArgumentTypeError(f"rule must look like LEFT:RIGHT:MARGIN, got {text!r}")
    return ComparisonRule(left=tuple(s.strip().upper() for s in left.split(",") if s.strip()),
                          right=tuple(s.strip().upper() for s in right.split(",") if s.strip()),
                          margin=margin)


def parse_threshold_arg(text: str):
    pos, sep, val = text.partition("=")
    if not sep:
        raise argparse.ArgumentTypeError(f"threshold must look like POS=VALUE, got {text!r}")
    return pos.strip().upper(), val


def print_report(res: PipelineResult, config: FilterConfig):
    s = res.summary
    print(f"Probe records: {s.probe_records}, fixture records: {s.fixture_records}")
    print(f"Sheets: {s.sheets_processed} with records / {s.sheets_scanned} scanned")
    print(f"Merged: {s.merged_records} (serials {s.matched_serials}, parts {s.matched_parts}), "
          f"unmatched probe units: {s.unmatched_count}")
    if s.unverified:
        print("No fixture matches: showing unverified probe values (pre only)")

    for (part, state), fr in res.rejections(default=config).items():
        print(f"{part} {state.value}: {fr.rejected_count}/{fr.total_units} rejected "
              f"({fr.rejected_percentage:.1f}%)")
        for pos, st in fr.position_stats.items():
            print(f"    {pos}: {st.rejected}/{st.total} ({st.percentage:.1f}%)")

    for a in aggregate_stats(res.points):
        if a.count:
            print(f"{a.pre_position}->{a.post_position}: avg diff {a.avg_difference:+.4f} (n={a.count})")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Reconcile probe and fixture airgap exports")
    parser.add_argument("files", nargs="+", help="Probe export and fixture sheet files")
    parser.add_argument("-t", "--threshold", action="append", type=parse_threshold_arg, default=[],
                        help="Per-position limit, e.g. N=.1 (repeatable)")
    parser.add_argument("-r", "--rule", action="append", type=parse_rule, default=[],
                        help="Comparison rule LEFT:RIGHT:MARGIN, e.g. N,O:P:0.2 (repeatable)")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)

    setup_logging(logging.DEBUG if args.verbose else logging.INFO)
    try:
        res = run_files(args.files)
    except (FileRoutingError, ProbeDataError) as e:
        log.error("%s", e)
        return 1

    print_report(res, FilterConfig(thresholds=dict(args.threshold), rules=tuple(args.rule)))
    return 0


if __name__ == "__main__":
    sys.exit(main())
