"""Topology, selection and trajectory access on top of MDAnalysis."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Set, Tuple

import numpy as np

import MDAnalysis as mda
from MDAnalysis.exceptions import NoDataError


class ResidueLookupError(LookupError):
    """A residue id has no counterpart in the loaded topology."""


@dataclass(frozen=True)
class ResidueRecord:
    resindex: int
    chain: str
    resname: str
    resid: int

    @property
    def label(self) -> str:
        return f"{self.chain}:{self.resname}{self.resid}"


class TrajectoryCursor:
    """Explicit handle on the current frame of a universe's trajectory.

    All frame changes made by the scanner go through :meth:`seek`, so the
    position is never moved behind the caller's back.
    """

    def __init__(self, universe: mda.Universe):
        self.universe = universe

    @property
    def frame_count(self) -> int:
        return len(self.universe.trajectory)

    @property
    def current_index(self) -> int:
        return int(self.universe.trajectory.ts.frame)

    @property
    def current_time(self) -> float:
        return float(self.universe.trajectory.ts.time)

    def seek(self, index: int) -> None:
        # Out-of-range indices raise from the reader itself.
        self.universe.trajectory[int(index)]

    def frame_indices(
        self,
        start: int = 0,
        stop: Optional[int] = None,
        stride: int = 1,
    ) -> range:
        if stride <= 0:
            raise ValueError("Frame stride must be positive")
        start = max(int(start), 0)
        stop = self.frame_count if stop is None else min(int(stop), self.frame_count)
        return range(start, stop, stride)


class TopologyView:
    """Residue lookups and spatial selections for one universe."""

    def __init__(self, universe: mda.Universe):
        self.universe = universe
        self._atom_resindices = np.asarray(universe.atoms.resindices, dtype=int)

    @property
    def has_chain_ids(self) -> bool:
        try:
            self.universe.atoms.chainIDs
        except (AttributeError, NoDataError):
            return False
        return True

    def residue_of(self, atom_index: int) -> int:
        return int(self._atom_resindices[int(atom_index)])

    def residue_metadata(self, resindex: int) -> Tuple[str, str, int]:
        record = self.residue_record(resindex)
        return record.chain, record.resname, record.resid

    def residue_record(self, resindex: int) -> ResidueRecord:
        resindex = int(resindex)
        if not 0 <= resindex < len(self.universe.residues):
            raise ResidueLookupError(
                f"Residue index {resindex} not found in topology "
                f"({len(self.universe.residues)} residues)"
            )
        residue = self.universe.residues[resindex]
        # Any atom of the residue carries the chain; fall back to segid.
        representative = residue.atoms[0]
        chain = ""
        if self.has_chain_ids:
            chain = str(representative.chainID or "").strip()
        if not chain:
            try:
                chain = str(residue.segid or "").strip()
            except NoDataError:
                chain = ""
        return ResidueRecord(
            resindex=resindex,
            chain=chain,
            resname=str(residue.resname),
            resid=int(residue.resid),
        )

    def residue_label(self, resindex: int) -> str:
        return self.residue_record(resindex).label

    def residue_labels(self, resindices: Iterable[int]) -> list[str]:
        return [self.residue_label(resindex) for resindex in resindices]

    def select_within(
        self,
        source: mda.core.groups.AtomGroup,
        radius: float,
    ) -> mda.core.groups.AtomGroup:
        """Atoms within ``radius`` (A) of any source atom, source included."""
        if len(source) == 0:
            return self.universe.atoms[:0]
        periodic = self.universe.dimensions is not None
        return self.universe.select_atoms(
            f"group source or around {float(radius)} group source",
            source=source,
            periodic=periodic,
        )

    @staticmethod
    def selection_residues(group: mda.core.groups.AtomGroup) -> Set[int]:
        if len(group) == 0:
            return set()
        return set(int(idx) for idx in group.residues.resindices)
