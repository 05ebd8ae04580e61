"""Frame x residue presence table for bridge targets."""
from __future__ import annotations

from typing import Iterable, List, Optional, Sequence, TextIO

import pandas as pd

from hbridge.topology import TopologyView


def sorted_residues(residues: Iterable[int]) -> List[int]:
    return sorted(set(int(resindex) for resindex in residues))


def presence_dataframe(
    residues: Iterable[int],
    per_frame_residues: Sequence[Iterable[int]],
    topology: TopologyView,
    frame_labels: Optional[Sequence[int]] = None,
    with_total: bool = True,
) -> pd.DataFrame:
    """Presence matrix with one row per frame and one column per residue.

    Columns are ordered by ascending residue index and labelled
    ``chain:RESNAMEresid``. Cells are 1 when the residue was a bridge
    target in that frame. The optional last row, ``total``, counts frames
    per residue.
    """
    columns = sorted_residues(residues)
    labels = topology.residue_labels(columns)
    if frame_labels is None:
        frame_labels = list(range(len(per_frame_residues)))
    if len(frame_labels) != len(per_frame_residues):
        raise ValueError(
            f"Got {len(frame_labels)} frame labels for {len(per_frame_residues)} frames"
        )

    rows = []
    totals = [0] * len(columns)
    for frame, present in zip(frame_labels, per_frame_residues):
        present_set = set(int(resindex) for resindex in present)
        values = [1 if resindex in present_set else 0 for resindex in columns]
        totals = [total + value for total, value in zip(totals, values)]
        rows.append([frame] + values)
    if with_total:
        rows.append(["total"] + totals)
    return pd.DataFrame(rows, columns=["frame"] + labels)


def render_presence_table(
    output: TextIO,
    residues: Iterable[int],
    per_frame_residues: Sequence[Iterable[int]],
    topology: TopologyView,
    frame_labels: Optional[Sequence[int]] = None,
) -> None:
    """Write the presence table as CSV to ``output``.

    Example::

        frame,A:ARG14,A:TYR31,A:LEU104
        0,0,1,1
        1,1,1,0
        total,1,2,1
    """
    df = presence_dataframe(residues, per_frame_residues, topology, frame_labels)
    df.to_csv(output, index=False, lineterminator="\n")
