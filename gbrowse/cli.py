#!/usr/bin/env python3
"""
Resolve a genome location and show the segments and track plan it yields.
"""

import argparse
import logging
import sys
from pathlib import Path

from tabulate import tabulate

from gbrowse.config import Browser, BrowserConfig, ConfigurationError, get_config
from gbrowse.database.feature_db import open_database
from gbrowse.database.resolver import LocationSyntaxError, SegmentResolver
from gbrowse.display.tracks import TrackAssembler
from gbrowse.utils import commas

logger = logging.getLogger(__name__)


def load_config(path, source=None) -> BrowserConfig:
    if path is None:
        return get_config()
    path = Path(path)
    if path.is_dir():
        browser = Browser(path)
        if source:
            browser.source(source)
        return browser.config
    return BrowserConfig.from_file(path)


def segment_table(segments):
    rows = [[s.ref, commas(s.start), commas(s.end), commas(s.length), s.cls, s.name] for s in segments]
    return tabulate(rows, headers=["ref", "start", "end", "length", "class", "name"])


def track_table(plan):
    rows = []
    for track in plan.tracks:
        d = track.decision
        rows.append([
            track.label,
            track.kind.value,
            plan.counts.count(track.label) if plan.counts else 0,
            d.bump_mode.name.lower() if d else "",
            d.label if d else "",
            (d.connector or "") if d else "",
        ])
    return tabulate(rows, headers=["track", "kind", "features", "bump", "label", "connector"])


def main(argv=None):
    parser = argparse.ArgumentParser(description='Resolve a genome location into display segments')
    parser.add_argument('location', type=str,
                        help='Location, e.g. chrII:10,000-20,000, Gene:unc-9 or unc*')
    parser.add_argument('--config', '-c', type=str, default=None,
                        help='Configuration file or directory of sources (default: ./local.yaml or ./default.yaml)')
    parser.add_argument('--source', '-s', type=str, default=None,
                        help='Data source to use when --config is a directory')
    parser.add_argument('--tracks', '-t', type=str, nargs='*', default=None,
                        help='Tracks to plan for the first segment (default: the configured default features)')
    parser.add_argument('--option', '-o', action='append', default=[], metavar='TRACK=CODE',
                        help='Per-track layout option code 0-5')
    parser.add_argument('--debug', '-d', action="store_true",
                        help='debug')

    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.debug else logging.WARNING)

    try:
        config = load_config(args.config, args.source)
        db = open_database(config)
        segments = SegmentResolver(db, config).resolve(args.location)
    except (ConfigurationError, LocationSyntaxError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    if not segments:
        print(f"{args.location}: not found")
        return 1

    print(segment_table(segments))

    tracks = args.tracks if args.tracks is not None else config.default_labels()
    if not tracks:
        return 0

    options = {}
    for opt in args.option:
        track, _, code = opt.partition('=')
        try:
            options[track] = int(code)
        except ValueError:
            print(f"error: option {opt!r} must look like TRACK=CODE", file=sys.stderr)
            return 2

    segment = segments[0]
    assembler = TrackAssembler(config)
    types = assembler.feature_types(tracks, segment.length)
    features = db.features_in_range(segment.ref, segment.low, segment.high, types)
    try:
        plan = assembler.assemble(segment.length, tracks, features, options=options)
    except ValueError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    print()
    print(f"{segment} ({commas(segment.length)} bp)")
    print(track_table(plan))
    return 0


if __name__ == "__main__":
    sys.exit(main())
