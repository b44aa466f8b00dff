#!/usr/bin/env python3
"""Cluster dashboards: main generator.

Builds each Grafana dashboard, validates it and writes its JSON file.
Usage: generate-dashboards [--dashboard cluster ...] [--out-dir DIR] [--stdout]
"""
import argparse
import logging
import os
import sys

from validate_dashboard import DashboardValidationError, validate

log = logging.getLogger(__name__)

DASHBOARD_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "dashboards")

BUILDERS = {
    "cluster": ("build_cluster", "build_cluster", "cluster.json"),
}


def load_builder(did):
    module_name, func_name, _ = BUILDERS[did]
    mod = __import__(module_name)
    return getattr(mod, func_name)


def build(did, check=True):
    dashboard = load_builder(did)()
    if check:
        try:
            validate(dashboard)
        except DashboardValidationError as e:
            log.error("%s: %d problem(s), not written", did, len(e.problems))
            for p in e.problems:
                log.error("  %s", p)
            raise
    return dashboard


def generate(dashboard_ids=None, out_dir=DASHBOARD_DIR, check=True):
    """Build, validate and write dashboards; returns ``(id, path, panel_count)`` per file."""
    ids = dashboard_ids or sorted(BUILDERS.keys())
    results = []

    for did in ids:
        if did not in BUILDERS:
            log.warning("Unknown dashboard ID: %s", did)
            continue

        outpath = os.path.join(out_dir, BUILDERS[did][2])
        dashboard = build(did, check=check)
        os.makedirs(out_dir, exist_ok=True)

        with open(outpath, "w") as f:
            f.write(dashboard.to_json())

        panel_count = len(dashboard.panels)
        results.append((did, outpath, panel_count))
        log.info("%s: %d panels (uid=%s) -> %s", did, panel_count, dashboard.uid, outpath)

    log.info("Generated %d / %d dashboards in %s", len(results), len(ids), out_dir)
    return results


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog="generate-dashboards",
        description="Generate Grafana dashboard JSON for the cluster.")
    parser.add_argument("--dashboard", nargs="+", metavar="ID", dest="ids",
                        help=f"dashboards to generate (default: all of {', '.join(sorted(BUILDERS))})")
    parser.add_argument("--out-dir", default=DASHBOARD_DIR,
                        help="directory to write JSON files into")
    parser.add_argument("--stdout", action="store_true",
                        help="print dashboard JSON instead of writing files")
    parser.add_argument("--no-check", dest="check", action="store_false",
                        help="skip structural validation")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(levelname)s %(name)s: %(message)s")

    ids = args.ids or sorted(BUILDERS.keys())
    known = [did for did in ids if did in BUILDERS]
    if not known:
        log.error("No known dashboard IDs in %s", ", ".join(ids))
        return 2

    try:
        if args.stdout:
            for did in ids:
                if did not in BUILDERS:
                    log.warning("Unknown dashboard ID: %s", did)
                    continue
                sys.stdout.write(build(did, check=args.check).to_json())
        else:
            generate(ids, out_dir=args.out_dir, check=args.check)
    except DashboardValidationError:
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
