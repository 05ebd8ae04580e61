"""Pre-flight checks for HBridgeLab analysis."""
from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Dict, List

import numpy as np
import MDAnalysis as mda
from MDAnalysis.exceptions import NoDataError, SelectionError

from hbridge.models import ProjectConfig
from hbridge.resolver import resolve_selection

logger = logging.getLogger("hbridge")


@dataclass
class SelectionCheck:
    label: str
    selection: str
    count: int
    n_residues: int
    resnames: List[str] = field(default_factory=list)


@dataclass
class PreflightReport:
    ok: bool
    errors: List[str]
    warnings: List[str]
    selection_checks: Dict[str, SelectionCheck]
    trajectory_summary: Dict[str, object]

    def to_dict(self) -> Dict[str, object]:
        return {
            "ok": self.ok,
            "errors": self.errors,
            "warnings": self.warnings,
            "selection_checks": {
                label: {
                    "label": check.label,
                    "selection": check.selection,
                    "count": check.count,
                    "n_residues": check.n_residues,
                    "resnames": check.resnames,
                }
                for label, check in self.selection_checks.items()
            },
            "trajectory_summary": self.trajectory_summary,
        }


def collect_metadata_warnings(universe: mda.Universe) -> List[str]:
    messages: List[str] = []
    try:
        chainids = np.asarray(universe.atoms.chainIDs, dtype=object)
    except (AttributeError, NoDataError):
        messages.append(
            "Topology has no chain IDs; residue labels will use segment IDs instead."
        )
    else:
        missing = int(sum(1 for cid in chainids if cid is None or str(cid).strip() == ""))
        if missing:
            messages.append(
                f"{missing}/{len(chainids)} atoms are missing chain IDs; "
                "their residue labels will use segment IDs instead."
            )
    dims = universe.dimensions
    if dims is None or not np.all(np.asarray(dims[:3]) > 0):
        messages.append("No valid box vectors found; distances are computed without PBC.")
    return messages


def run_preflight(project: ProjectConfig, universe: mda.Universe) -> PreflightReport:
    errors: List[str] = []
    warnings: List[str] = []
    checks: Dict[str, SelectionCheck] = {}
    groups: Dict[str, mda.core.groups.AtomGroup] = {}

    for label, spec in project.selections.items():
        try:
            resolved = resolve_selection(universe, spec)
        except (ValueError, SelectionError) as exc:
            errors.append(f"Selection '{label}': {exc}")
            continue
        group = resolved.group
        groups[label] = group
        resnames: List[str] = []
        if len(group):
            resnames = sorted(set(str(name) for name in group.residues.resnames))
        checks[label] = SelectionCheck(
            label=label,
            selection=resolved.selection_string,
            count=len(group),
            n_residues=len(group.residues) if len(group) else 0,
            resnames=resnames,
        )
        if len(group) == 0:
            warnings.append(f"Selection '{label}' resolved to 0 atoms; bridges using it are empty.")

    if not project.bridges:
        errors.append("Project defines no bridges.")

    for bridge in project.bridges:
        for role, label in (("source", bridge.source), ("target", bridge.target)):
            if label not in project.selections:
                errors.append(f"Bridge '{bridge.name}': {role} selection '{label}' not defined.")
        source = groups.get(bridge.source)
        target = groups.get(bridge.target)
        if source is None or target is None:
            continue
        shared = len(source.intersection(target))
        if shared:
            warnings.append(
                f"Bridge '{bridge.name}': source and target share {shared} atoms; "
                "results for shared residues are not meaningful."
            )

    n_frames = len(universe.trajectory)
    options = project.analysis
    if options.stride <= 0:
        errors.append("Frame stride must be positive.")
    if options.frame_start >= n_frames:
        errors.append(f"frame_start {options.frame_start} is beyond the last frame ({n_frames - 1}).")
    if options.frame_stop is not None and options.frame_stop <= options.frame_start:
        errors.append("frame_stop must be greater than frame_start.")

    warnings.extend(collect_metadata_warnings(universe))
    for message in warnings:
        logger.warning("Preflight: %s", message)

    return PreflightReport(
        ok=not errors,
        errors=errors,
        warnings=warnings,
        selection_checks=checks,
        trajectory_summary={
            "n_atoms": len(universe.atoms),
            "n_residues": len(universe.residues),
            "n_frames": n_frames,
        },
    )
