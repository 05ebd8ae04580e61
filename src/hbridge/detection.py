"""Geometric hydrogen-bond detection.

Two backends return the same thing, a list of ``(donor_index,
acceptor_index)`` atom pairs for the current frame restricted to a
candidate atom group:

``geometric``
    Donor-hydrogen pairs are found by distance (``dh_cutoff``), then
    donor-acceptor pairs within ``max_distance`` are kept when the
    donor-hydrogen-acceptor angle is at least ``min_angle``.
``hbond_analysis``
    Delegates to :class:`MDAnalysis.analysis.hydrogenbonds.HydrogenBondAnalysis`
    on a one-frame window.
"""
from __future__ import annotations

import inspect
import logging
import warnings
from typing import Dict, List, Optional, Protocol, Tuple

import numpy as np

import MDAnalysis as mda
from MDAnalysis.lib import distances

from hbridge.models import HBondCriteria

logger = logging.getLogger("hbridge")

AtomPair = Tuple[int, int]

# Donor and acceptor closer than this are the same atom or bonded.
_MIN_DONOR_ACCEPTOR = 1.0


class HBondDetector(Protocol):
    def detect(
        self,
        candidates: mda.core.groups.AtomGroup,
        max_distance: float,
        min_angle: float,
    ) -> List[AtomPair]:
        ...


class GeometricHBondDetector:
    def __init__(
        self,
        donors_selection: str = "name N* O*",
        hydrogens_selection: str = "name H*",
        acceptors_selection: str = "name N* O*",
        dh_cutoff: float = 1.2,
    ):
        self.donors_selection = donors_selection
        self.hydrogens_selection = hydrogens_selection
        self.acceptors_selection = acceptors_selection
        self.dh_cutoff = dh_cutoff

    def detect(
        self,
        candidates: mda.core.groups.AtomGroup,
        max_distance: float,
        min_angle: float,
    ) -> List[AtomPair]:
        if len(candidates) == 0:
            return []
        donors = candidates.select_atoms(self.donors_selection)
        hydrogens = candidates.select_atoms(self.hydrogens_selection)
        acceptors = candidates.select_atoms(self.acceptors_selection)
        if len(donors) == 0 or len(hydrogens) == 0 or len(acceptors) == 0:
            return []
        box = candidates.dimensions

        dh_pairs = distances.capped_distance(
            donors.positions,
            hydrogens.positions,
            max_cutoff=self.dh_cutoff,
            box=box,
            return_distances=False,
        )
        if len(dh_pairs) == 0:
            return []
        d_atoms = donors[dh_pairs[:, 0]]
        h_atoms = hydrogens[dh_pairs[:, 1]]

        da_pairs = distances.capped_distance(
            d_atoms.positions,
            acceptors.positions,
            max_cutoff=max_distance,
            min_cutoff=_MIN_DONOR_ACCEPTOR,
            box=box,
            return_distances=False,
        )
        if len(da_pairs) == 0:
            return []
        d_sel = d_atoms[da_pairs[:, 0]]
        h_sel = h_atoms[da_pairs[:, 0]]
        a_sel = acceptors[da_pairs[:, 1]]

        angles = np.degrees(
            distances.calc_angles(d_sel.positions, h_sel.positions, a_sel.positions, box=box)
        )
        mask = angles >= min_angle
        if not np.any(mask):
            return []
        hits = zip(d_sel.indices[mask].tolist(), a_sel.indices[mask].tolist())
        return sorted(set((int(d), int(a)) for d, a in hits))


def _filter_kwargs(callable_obj, kwargs: Dict[str, object]) -> Dict[str, object]:
    try:
        sig = inspect.signature(callable_obj)
    except (TypeError, ValueError):
        return kwargs
    if any(param.kind == param.VAR_KEYWORD for param in sig.parameters.values()):
        return kwargs
    return {key: value for key, value in kwargs.items() if key in sig.parameters}


def _init_hbond_analysis(
    universe: mda.Universe,
    donors_selection: Optional[str],
    hydrogens_selection: Optional[str],
    acceptors_selection: Optional[str],
    distance: float,
    angle: float,
    dh_cutoff: float,
    update_selections: bool = False,
):
    """Build a HydrogenBondAnalysis, mapping options onto whatever keyword
    names the installed MDAnalysis release uses."""
    from MDAnalysis.analysis import hydrogenbonds

    cls = hydrogenbonds.HydrogenBondAnalysis
    init_params = inspect.signature(cls.__init__).parameters
    kwargs: Dict[str, object] = {}

    if "d_a_cutoff" in init_params:
        kwargs["d_a_cutoff"] = distance
    elif "distance" in init_params:
        kwargs["distance"] = distance

    if "d_h_a_angle_cutoff" in init_params:
        kwargs["d_h_a_angle_cutoff"] = angle
    elif "d_h_a_angle" in init_params:
        kwargs["d_h_a_angle"] = angle
    elif "angle" in init_params:
        kwargs["angle"] = angle

    if "d_h_cutoff" in init_params:
        kwargs["d_h_cutoff"] = dh_cutoff

    for key, value in [
        ("donors_sel", donors_selection),
        ("hydrogens_sel", hydrogens_selection),
        ("acceptors_sel", acceptors_selection),
    ]:
        if value and key in init_params:
            kwargs[key] = value

    if "update_selections" in init_params:
        kwargs["update_selections"] = update_selections

    kwargs = _filter_kwargs(cls.__init__, kwargs)
    return cls(universe, **kwargs)


def _extract_hbond_array(analysis) -> np.ndarray:
    if hasattr(analysis, "results") and hasattr(analysis.results, "hbonds"):
        hbonds = analysis.results.hbonds
    else:
        hbonds = getattr(analysis, "hbonds", None)
    if hbonds is None:
        return np.empty((0, 6), dtype=float)
    arr = np.asarray(hbonds)
    if arr.size == 0:
        return np.empty((0, 6), dtype=float)
    if arr.ndim == 1:
        arr = np.expand_dims(arr, axis=0)
    return arr


class HBondAnalysisDetector:
    """Runs HydrogenBondAnalysis for the current frame only."""

    def __init__(
        self,
        donors_selection: str = "name N* O*",
        hydrogens_selection: str = "name H*",
        acceptors_selection: str = "name N* O*",
        dh_cutoff: float = 1.2,
    ):
        self.donors_selection = donors_selection
        self.hydrogens_selection = hydrogens_selection
        self.acceptors_selection = acceptors_selection
        self.dh_cutoff = dh_cutoff

    def detect(
        self,
        candidates: mda.core.groups.AtomGroup,
        max_distance: float,
        min_angle: float,
    ) -> List[AtomPair]:
        if len(candidates) == 0:
            return []
        universe = candidates.universe
        frame = int(universe.trajectory.ts.frame)
        restrict = "index " + " ".join(str(int(idx)) for idx in candidates.indices)
        analysis = _init_hbond_analysis(
            universe,
            donors_selection=f"({self.donors_selection}) and ({restrict})",
            hydrogens_selection=f"({self.hydrogens_selection}) and ({restrict})",
            acceptors_selection=f"({self.acceptors_selection}) and ({restrict})",
            distance=max_distance,
            angle=min_angle,
            dh_cutoff=self.dh_cutoff,
        )
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            analysis.run(start=frame, stop=frame + 1)
        for item in caught:
            logger.debug("HydrogenBondAnalysis frame %d: %s", frame, item.message)
        # The analysis iterates the trajectory; put the reader back where it was.
        universe.trajectory[frame]

        hbonds = _extract_hbond_array(analysis)
        if hbonds.size == 0:
            return []
        donors = hbonds[:, 1].astype(int)
        acceptors = hbonds[:, 3].astype(int)
        return sorted(set(zip(donors.tolist(), acceptors.tolist())))


def build_detector(criteria: HBondCriteria) -> HBondDetector:
    kwargs = dict(
        donors_selection=criteria.donors_selection,
        hydrogens_selection=criteria.hydrogens_selection,
        acceptors_selection=criteria.acceptors_selection,
        dh_cutoff=criteria.dh_cutoff,
    )
    if criteria.backend == "geometric":
        return GeometricHBondDetector(**kwargs)
    if criteria.backend == "hbond_analysis":
        return HBondAnalysisDetector(**kwargs)
    raise ValueError(f"Unsupported detector backend: {criteria.backend}")
