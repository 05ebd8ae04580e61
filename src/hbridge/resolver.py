"""Selection resolution helpers."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

import logging
import re

import MDAnalysis as mda

from hbridge.models import SelectionSpec

logger = logging.getLogger("hbridge")

_LEADING_OPERATOR = re.compile(r"^\s*(and|or|not)\b", re.IGNORECASE)


@dataclass
class ResolvedSelection:
    label: str
    group: mda.core.groups.AtomGroup
    selection_string: str

    @property
    def n_atoms(self) -> int:
        return len(self.group)


def _build_selection(spec: SelectionSpec) -> str:
    parts = []
    if spec.resid is not None:
        parts.append(f"resid {spec.resid}")
    if spec.resname:
        parts.append(f"resname {spec.resname}")
    if spec.atomname:
        parts.append(f"name {spec.atomname}")
    if spec.segid:
        parts.append(f"segid {spec.segid}")
    if spec.chain:
        parts.append(f"chainID {spec.chain}")
    return " and ".join(parts)


def resolve_selection(universe: mda.Universe, spec: SelectionSpec) -> ResolvedSelection:
    """Turn a :class:`SelectionSpec` into an atom group.

    An empty result is returned as an empty group; callers decide whether
    that is a problem. With ``spec.updating`` the group is an updating
    group, re-evaluated whenever the trajectory frame changes.
    """
    n_atoms = len(universe.atoms)
    if spec.selection:
        selection = spec.selection
        if _LEADING_OPERATOR.match(selection):
            raise ValueError(
                f"Selection '{spec.label}' starts with an operator: {selection!r}"
            )
        logger.info("Selection %s (raw): %s", spec.label, selection)
        group = universe.select_atoms(selection, updating=spec.updating)
    elif spec.atom_indices:
        indices = [int(idx) for idx in spec.atom_indices]
        out_of_range = [idx for idx in indices if not 0 <= idx < n_atoms]
        if out_of_range:
            raise ValueError(
                f"Selection '{spec.label}' atom_indices out of bounds for {n_atoms} atoms: "
                f"{out_of_range[:10]}"
            )
        selection = "index " + " ".join(str(idx) for idx in indices)
        group = universe.atoms[indices]
    else:
        selection = _build_selection(spec)
        if not selection:
            raise ValueError(f"Selection '{spec.label}' has no selection data")
        group = universe.select_atoms(selection, updating=spec.updating)

    if len(group) == 0:
        logger.warning("Selection %s resolved to 0 atoms: %s", spec.label, selection)

    if spec.expect_count is not None and len(group) != spec.expect_count:
        raise ValueError(
            f"Selection '{spec.label}' expected {spec.expect_count} atoms but resolved {len(group)}"
        )

    return ResolvedSelection(label=spec.label, group=group, selection_string=selection)


def resolve_selection_from_label(
    universe: mda.Universe,
    selection_label: str,
    selections: Dict[str, SelectionSpec],
) -> ResolvedSelection:
    if selection_label not in selections:
        raise KeyError(f"Selection label '{selection_label}' not found")
    return resolve_selection(universe, selections[selection_label])
