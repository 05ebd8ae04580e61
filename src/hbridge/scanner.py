"""Per-frame bridge search and trajectory scanning."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, Iterator, List, Optional, Set, Union

import MDAnalysis as mda

from hbridge.detection import HBondDetector, build_detector
from hbridge.graph import (
    BridgePath,
    ResidueGraph,
    build_residue_graph,
    edge_count,
    find_bridge_paths,
)
from hbridge.models import HBondCriteria
from hbridge.topology import TopologyView, TrajectoryCursor
from hbridge.units import to_internal_length

logger = logging.getLogger("hbridge")

ProgressCallback = Callable[[int, int, str], None]


@dataclass
class FrameResult:
    frame: int
    paths: List[BridgePath]
    time: float = 0.0
    n_candidates: int = 0
    n_edges: int = 0

    @property
    def terminal_residues(self) -> List[int]:
        return [path[-1] for path in self.paths]

    @property
    def terminal_set(self) -> Set[int]:
        return set(self.terminal_residues)


@dataclass
class TrajectoryResult:
    frames: List[FrameResult] = field(default_factory=list)
    all_terminal_residues: List[int] = field(default_factory=list)
    cancelled: bool = False

    @property
    def per_frame_terminal_residues(self) -> List[List[int]]:
        return [frame.terminal_residues for frame in self.frames]

    @property
    def frame_labels(self) -> List[int]:
        return [frame.frame for frame in self.frames]

    @property
    def frame_times(self) -> List[float]:
        return [frame.time for frame in self.frames]

    def residues(self) -> List[int]:
        return sorted(set(self.all_terminal_residues))

    def append(self, result: FrameResult) -> None:
        self.frames.append(result)
        self.all_terminal_residues.extend(result.terminal_residues)

    def __iter__(self) -> Iterator[List]:
        # Unpacks as (all_terminal_residues, per_frame_terminal_residues).
        yield self.all_terminal_residues
        yield self.per_frame_terminal_residues


class BridgeScanner:
    """Finds hydrogen-bond bridges between two atom groups frame by frame."""

    def __init__(
        self,
        topology: TopologyView,
        criteria: Optional[HBondCriteria] = None,
        detector: Optional[HBondDetector] = None,
    ):
        self.topology = topology
        self.criteria = criteria or HBondCriteria()
        self.detector = detector or build_detector(self.criteria)
        self.radius = to_internal_length(self.criteria.radius, self.criteria.unit)
        self.max_distance = to_internal_length(self.criteria.distance, self.criteria.unit)

    def residue_graph(
        self,
        candidates: mda.core.groups.AtomGroup,
    ) -> ResidueGraph:
        pairs = self.detector.detect(candidates, self.max_distance, self.criteria.angle)
        return build_residue_graph(pairs, self.topology.residue_of)

    def find_bridges(
        self,
        source: mda.core.groups.AtomGroup,
        target: mda.core.groups.AtomGroup,
    ) -> List[BridgePath]:
        """Bridge paths for the frame the trajectory currently sits on."""
        paths, _, _ = self._search(source, target)
        return paths

    def _search(self, source, target):
        if len(source) == 0 or len(target) == 0:
            logger.debug("Empty source or target selection; no bridges searched.")
            return [], 0, 0
        candidates = self.topology.select_within(source, self.radius)
        graph = self.residue_graph(candidates)
        targets = self.topology.selection_residues(candidates.intersection(target))
        sources = self.topology.selection_residues(source)
        paths = find_bridge_paths(graph, sources, targets, self.criteria.max_steps)
        return paths, len(candidates), edge_count(graph)

    def scan_frame(
        self,
        cursor: TrajectoryCursor,
        frame: int,
        source: mda.core.groups.AtomGroup,
        target: mda.core.groups.AtomGroup,
    ) -> FrameResult:
        cursor.seek(frame)
        paths, n_candidates, n_edges = self._search(source, target)
        logger.debug(
            "Frame %d: %d candidate atoms, %d residue edges, %d bridge paths",
            frame,
            n_candidates,
            n_edges,
            len(paths),
        )
        return FrameResult(
            frame=int(frame),
            paths=paths,
            time=cursor.current_time,
            n_candidates=n_candidates,
            n_edges=n_edges,
        )

    def scan_trajectory(
        self,
        cursor: TrajectoryCursor,
        source: mda.core.groups.AtomGroup,
        target: mda.core.groups.AtomGroup,
        frames: Optional[Iterable[int]] = None,
        progress: Optional[ProgressCallback] = None,
        cancel_flag: Optional[Callable[[], bool]] = None,
    ) -> TrajectoryResult:
        frame_list = list(frames) if frames is not None else list(range(cursor.frame_count))
        total = len(frame_list)
        result = TrajectoryResult()
        for sample_index, frame in enumerate(frame_list):
            if cancel_flag and cancel_flag():
                logger.info(
                    "Cancellation requested at sample %d (frame %d).", sample_index, frame
                )
                result.cancelled = True
                break
            result.append(self.scan_frame(cursor, frame, source, target))
            if progress:
                progress(sample_index + 1, total, f"Frame {frame}")
        return result


def _scanner(
    topology: TopologyView,
    radius: float,
    max_distance: float,
    min_angle: float,
    max_waters: int,
    detector: Optional[HBondDetector],
) -> BridgeScanner:
    criteria = HBondCriteria(
        radius=radius,
        distance=max_distance,
        angle=min_angle,
        max_waters=max_waters,
    )
    return BridgeScanner(topology, criteria=criteria, detector=detector)


def find_bridges(
    topology: Union[TopologyView, mda.Universe],
    source: mda.core.groups.AtomGroup,
    target: mda.core.groups.AtomGroup,
    radius: float = 5.0,
    max_distance: float = 3.0,
    min_angle: float = 120.0,
    max_waters: int = 2,
    detector: Optional[HBondDetector] = None,
) -> List[BridgePath]:
    """Hydrogen-bond bridges between ``source`` and ``target`` in the current frame.

    Each path is a tuple of residue indices (``resindex``): the first
    belongs to ``source``, the last to ``target`` and up to ``max_waters``
    bridging residues sit in between. ``source`` and ``target`` should not
    share atoms.
    """
    if isinstance(topology, mda.Universe):
        topology = TopologyView(topology)
    scanner = _scanner(topology, radius, max_distance, min_angle, max_waters, detector)
    return scanner.find_bridges(source, target)


def scan_trajectory(
    universe: Union[mda.Universe, TrajectoryCursor],
    source: mda.core.groups.AtomGroup,
    target: mda.core.groups.AtomGroup,
    radius: float = 5.0,
    max_distance: float = 3.0,
    min_angle: float = 120.0,
    max_waters: int = 2,
    detector: Optional[HBondDetector] = None,
    frames: Optional[Iterable[int]] = None,
) -> TrajectoryResult:
    """Run :func:`find_bridges` on every frame.

    The result unpacks as ``(all_terminal_residues, per_frame_terminal_residues)``:
    target-side residues in discovery order (duplicates kept) and one list
    per frame in frame order.
    """
    cursor = universe if isinstance(universe, TrajectoryCursor) else TrajectoryCursor(universe)
    topology = TopologyView(cursor.universe)
    scanner = _scanner(topology, radius, max_distance, min_angle, max_waters, detector)
    return scanner.scan_trajectory(cursor, source, target, frames=frames)
