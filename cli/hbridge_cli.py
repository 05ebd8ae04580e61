"""Command line interface for HBridgeLab."""
from __future__ import annotations

import argparse
import logging
import sys

import MDAnalysis as mda

from hbridge.analysis import BridgeAnalysisEngine, load_project_json
from hbridge.export import export_results
from hbridge.logging_utils import configure_console, setup_run_logger
from hbridge.models import HBondCriteria
from hbridge.preflight import run_preflight
from hbridge.presence import render_presence_table
from hbridge.report import generate_report
from hbridge.scanner import BridgeScanner
from hbridge.topology import TopologyView, TrajectoryCursor


def _progress(current: int, total: int, message: str) -> None:
    percent = int(100 * current / max(total, 1))
    sys.stderr.write(f"\r[{percent:3d}%] {message}")
    sys.stderr.flush()
    if current >= total:
        sys.stderr.write("\n")


def _load_universe(topology: str, trajectory: str | None) -> mda.Universe:
    if trajectory:
        return mda.Universe(topology, trajectory)
    return mda.Universe(topology)


def run_command(args: argparse.Namespace) -> None:
    project = load_project_json(args.project)
    if args.output:
        project.outputs.output_dir = args.output
    if args.stride is not None:
        project.analysis.stride = args.stride
    if args.start is not None:
        project.analysis.frame_start = args.start
    if args.stop is not None:
        project.analysis.frame_stop = args.stop
    if args.no_paths:
        project.outputs.write_paths = False

    logger, log_path = setup_run_logger(
        project.outputs.output_dir,
        console_level=logging.INFO if args.verbose else None,
    )
    logger.info("CLI analysis requested")
    engine = BridgeAnalysisEngine(project)
    result = engine.run(progress=_progress if args.progress else None, logger=logger)
    export_results(result, project)
    print(f"Log written to {log_path}")
    if result.warnings:
        print("Warnings:")
        for warning in result.warnings:
            print(f"  - {warning}")
    for name, bridge in result.bridge_results.items():
        print(
            f"Bridge {name}: {bridge.summary['n_residues']} residues, "
            f"{bridge.summary['n_paths']} paths over {bridge.summary['n_frames']} frames"
        )

    if args.report or project.outputs.report:
        report_path = generate_report(result, project, command_line=" ".join(sys.argv))
        print(f"Report written to {report_path}")


def scan_command(args: argparse.Namespace) -> None:
    configure_console(logging.DEBUG if args.verbose else logging.WARNING)
    universe = _load_universe(args.topology, args.trajectory)
    criteria = HBondCriteria(
        radius=args.radius,
        distance=args.dist,
        angle=args.angle,
        max_waters=args.waters,
        backend=args.backend,
    )
    source = universe.select_atoms(args.source)
    target = universe.select_atoms(args.target)
    topology = TopologyView(universe)
    cursor = TrajectoryCursor(universe)
    scanner = BridgeScanner(topology, criteria=criteria)
    trajectory = scanner.scan_trajectory(
        cursor,
        source,
        target,
        progress=_progress if args.progress else None,
    )
    residues, per_frame = trajectory
    if args.output:
        with open(args.output, "w", encoding="utf-8", newline="") as handle:
            render_presence_table(handle, residues, per_frame, topology)
    else:
        render_presence_table(sys.stdout, residues, per_frame, topology)


def preflight_command(args: argparse.Namespace) -> None:
    project = load_project_json(args.project)
    universe = _load_universe(project.inputs.topology, project.inputs.trajectory)
    report = run_preflight(project, universe)
    for label, check in report.selection_checks.items():
        print(f"Selection {label}: {check.count} atoms, {check.n_residues} residues")
    for warning in report.warnings:
        print(f"WARNING: {warning}")
    for error in report.errors:
        print(f"ERROR: {error}")
    if not report.ok:
        sys.exit(1)


def main() -> None:
    parser = argparse.ArgumentParser(description="HBridgeLab CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Run a bridge analysis project")
    run_parser.add_argument("--project", required=True, help="Project JSON/YAML file")
    run_parser.add_argument("--output", help="Output directory")
    run_parser.add_argument("--stride", type=int, help="Frame stride")
    run_parser.add_argument("--start", type=int, help="Start frame index")
    run_parser.add_argument("--stop", type=int, help="Stop frame index (exclusive)")
    run_parser.add_argument("--no-paths", action="store_true", help="Skip the per-path table")
    run_parser.add_argument("--progress", action="store_true", help="Show progress bar")
    run_parser.add_argument("--report", action="store_true", help="Generate report")
    run_parser.add_argument("-v", "--verbose", action="store_true", help="Echo the run log to stderr")
    run_parser.set_defaults(func=run_command)

    scan_parser = subparsers.add_parser(
        "scan", help="Scan a trajectory and print the bridge presence table"
    )
    scan_parser.add_argument("--topology", required=True, help="Topology file")
    scan_parser.add_argument("--trajectory", help="Trajectory file")
    scan_parser.add_argument("--source", required=True, help="Source selection string")
    scan_parser.add_argument("--target", required=True, help="Target selection string")
    scan_parser.add_argument("--radius", type=float, default=5.0, help="Search radius (A)")
    scan_parser.add_argument("--dist", type=float, default=3.0, help="Donor-acceptor cutoff (A)")
    scan_parser.add_argument("--angle", type=float, default=120.0, help="Minimum D-H-A angle (deg)")
    scan_parser.add_argument("--waters", type=int, default=2, help="Maximum bridging residues")
    scan_parser.add_argument(
        "--backend",
        default="geometric",
        choices=["geometric", "hbond_analysis"],
        help="Hydrogen-bond detector",
    )
    scan_parser.add_argument("--output", help="CSV output path (default: stdout)")
    scan_parser.add_argument("--progress", action="store_true", help="Show progress bar")
    scan_parser.add_argument("-v", "--verbose", action="store_true", help="Log per-frame details to stderr")
    scan_parser.set_defaults(func=scan_command)

    preflight_parser = subparsers.add_parser("preflight", help="Check a project before running")
    preflight_parser.add_argument("--project", required=True, help="Project JSON/YAML file")
    preflight_parser.set_defaults(func=preflight_command)

    args = parser.parse_args()
    args.func(args)


if __name__ == "__main__":
    main()
