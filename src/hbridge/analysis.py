"""Main analysis engine for HBridgeLab."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

import pandas as pd
import yaml
import MDAnalysis as mda

from hbridge.models import BridgeConfig, ProjectConfig
from hbridge.preflight import PreflightReport, run_preflight
from hbridge.presence import presence_dataframe
from hbridge.resolver import ResolvedSelection, resolve_selection
from hbridge.scanner import BridgeScanner, ProgressCallback, TrajectoryResult
from hbridge.stats import PresenceAccumulator
from hbridge.topology import TopologyView, TrajectoryCursor


@dataclass
class BridgeResult:
    name: str
    trajectory: TrajectoryResult
    presence: pd.DataFrame
    paths: pd.DataFrame
    per_frame: pd.DataFrame
    per_residue: pd.DataFrame
    summary: Dict[str, object]


@dataclass
class AnalysisResult:
    bridge_results: Dict[str, BridgeResult]
    preflight: PreflightReport
    frame_labels: List[int]
    warnings: List[str]
    cancelled: bool = False


def load_project_json(path: str) -> ProjectConfig:
    """Load a project file; ``.yaml``/``.yml`` are read as YAML, anything else as JSON."""
    with open(path, "r", encoding="utf-8") as handle:
        if path.endswith((".yaml", ".yml")):
            data = yaml.safe_load(handle)
        else:
            data = json.load(handle)
    return ProjectConfig.from_dict(data or {})


def paths_dataframe(trajectory: TrajectoryResult, topology: TopologyView) -> pd.DataFrame:
    rows = []
    for frame in trajectory.frames:
        for path in frame.paths:
            rows.append(
                {
                    "frame": frame.frame,
                    "time": frame.time,
                    "source": path[0],
                    "target": path[-1],
                    "n_bridging": len(path) - 2,
                    "path": ";".join(str(resindex) for resindex in path),
                    "source_label": topology.residue_label(path[0]),
                    "target_label": topology.residue_label(path[-1]),
                    "path_labels": ";".join(topology.residue_labels(path)),
                }
            )
    columns = [
        "frame",
        "time",
        "source",
        "target",
        "n_bridging",
        "path",
        "source_label",
        "target_label",
        "path_labels",
    ]
    return pd.DataFrame(rows, columns=columns)


class BridgeAnalysisEngine:
    def __init__(self, project: ProjectConfig):
        self.project = project

    def _load_universe(self) -> mda.Universe:
        inputs = self.project.inputs
        if inputs.trajectory:
            return mda.Universe(inputs.topology, inputs.trajectory)
        return mda.Universe(inputs.topology)

    def _resolve_selections(self, universe: mda.Universe) -> Dict[str, ResolvedSelection]:
        return {
            label: resolve_selection(universe, spec)
            for label, spec in self.project.selections.items()
        }

    def run(
        self,
        progress: Optional[ProgressCallback] = None,
        cancel_flag: Optional[Callable[[], bool]] = None,
        logger: Optional[logging.Logger] = None,
        universe: Optional[mda.Universe] = None,
    ) -> AnalysisResult:
        universe = universe if universe is not None else self._load_universe()
        warnings: List[str] = []

        preflight = run_preflight(self.project, universe)
        if not preflight.ok:
            raise ValueError("Preflight failed: " + "; ".join(preflight.errors))
        warnings.extend(preflight.warnings)

        if logger:
            logger.info("Topology: %s", self.project.inputs.topology)
            logger.info("Trajectory: %s", self.project.inputs.trajectory or "None")
            logger.info("Total atoms: %d", len(universe.atoms))
            logger.info("Total frames: %d", len(universe.trajectory))

        resolved = self._resolve_selections(universe)
        if logger:
            for label, selection in resolved.items():
                logger.info(
                    "Selection %s: %d atoms | selection: %s",
                    label,
                    selection.n_atoms,
                    selection.selection_string,
                )

        cursor = TrajectoryCursor(universe)
        topology = TopologyView(universe)
        options = self.project.analysis
        frame_indices = cursor.frame_indices(options.frame_start, options.frame_stop, options.stride)
        if len(frame_indices) == 0:
            raise ValueError("No frames selected for analysis")

        n_bridges = len(self.project.bridges)
        total_units = n_bridges * len(frame_indices)

        results: Dict[str, BridgeResult] = {}
        cancelled = False
        for bridge_number, bridge in enumerate(self.project.bridges):
            if logger:
                logger.info("Processing H-bond bridge: %s...", bridge.name)

            def _bridge_progress(current: int, total: int, message: str, offset=bridge_number) -> None:
                if progress:
                    progress(offset * total + current, total_units, f"{bridge.name}: {message}")

            trajectory = self._scan_bridge(
                bridge,
                resolved,
                cursor,
                topology,
                frame_indices,
                _bridge_progress,
                cancel_flag,
            )
            results[bridge.name] = self._summarize_bridge(bridge, trajectory, topology)
            if logger:
                summary = results[bridge.name].summary
                logger.info(
                    "H-bond bridge %s: %d frames, %d target residues, bridged fraction %.3f",
                    bridge.name,
                    len(trajectory.frames),
                    summary["n_residues"],
                    summary["bridged_fraction"],
                )
            if trajectory.cancelled:
                cancelled = True
                if logger:
                    logger.info("Run cancelled during bridge %s.", bridge.name)
                break

        return AnalysisResult(
            bridge_results=results,
            preflight=preflight,
            frame_labels=list(frame_indices),
            warnings=warnings,
            cancelled=cancelled,
        )

    def _scan_bridge(
        self,
        bridge: BridgeConfig,
        resolved: Dict[str, ResolvedSelection],
        cursor: TrajectoryCursor,
        topology: TopologyView,
        frame_indices: range,
        progress: ProgressCallback,
        cancel_flag: Optional[Callable[[], bool]],
    ) -> TrajectoryResult:
        scanner = BridgeScanner(topology, criteria=bridge.criteria)
        return scanner.scan_trajectory(
            cursor,
            resolved[bridge.source].group,
            resolved[bridge.target].group,
            frames=frame_indices,
            progress=progress,
            cancel_flag=cancel_flag,
        )

    def _summarize_bridge(
        self,
        bridge: BridgeConfig,
        trajectory: TrajectoryResult,
        topology: TopologyView,
    ) -> BridgeResult:
        residues = trajectory.residues()
        records = {resindex: topology.residue_record(resindex) for resindex in residues}
        accumulator = PresenceAccumulator(
            records=records,
            gap_tolerance=self.project.analysis.gap_tolerance,
            frame_stride=self.project.analysis.stride,
        )
        for sample_index, frame in enumerate(trajectory.frames):
            accumulator.update(
                sample_index,
                frame.terminal_set,
                frame_label=frame.frame,
                n_paths=len(frame.paths),
            )
        if trajectory.frames:
            stats = accumulator.finalize()
        else:
            stats = {"per_frame": pd.DataFrame(), "per_residue": pd.DataFrame(), "summary": {}}
        summary = dict(stats["summary"])
        summary.setdefault("n_frames", 0)
        summary.setdefault("n_residues", 0)
        summary.setdefault("bridged_fraction", 0.0)
        summary["criteria"] = bridge.criteria.to_dict()
        summary["n_paths"] = sum(len(frame.paths) for frame in trajectory.frames)
        summary["cancelled"] = trajectory.cancelled

        return BridgeResult(
            name=bridge.name,
            trajectory=trajectory,
            presence=presence_dataframe(
                residues,
                trajectory.per_frame_terminal_residues,
                topology,
                frame_labels=trajectory.frame_labels,
            ),
            paths=paths_dataframe(trajectory, topology),
            per_frame=stats["per_frame"],
            per_residue=stats["per_residue"],
            summary=summary,
        )
