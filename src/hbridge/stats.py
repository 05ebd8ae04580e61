"""Occupancy and residence statistics for bridge target residues."""
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from statistics import mean
from typing import Dict, List, Set

import numpy as np
import pandas as pd

from hbridge.topology import ResidueRecord


@dataclass
class PresenceAccumulator:
    """Collects per-frame target sets and derives per-residue statistics.

    Residence lengths are counted in samples. Intermittent residence merges
    absences of up to ``gap_tolerance`` samples.
    """
    records: Dict[int, ResidueRecord]
    gap_tolerance: int = 0
    frame_stride: int = 1

    def __post_init__(self) -> None:
        self.frame_labels: List[int] = []
        self.n_present: List[int] = []
        self.n_paths: List[int] = []
        self.frame_rows: List[Dict[str, object]] = []

        self.frames_present_count: Dict[int, int] = defaultdict(int)
        self.first_seen: Dict[int, int] = {}
        self.last_seen: Dict[int, int] = {}
        self.entries_count: Dict[int, int] = defaultdict(int)

        self.current_cont: Dict[int, int] = {}
        self.current_inter: Dict[int, int] = {}
        self.last_present: Dict[int, int] = {}
        self.cont_lengths: Dict[int, List[int]] = defaultdict(list)
        self.inter_lengths: Dict[int, List[int]] = defaultdict(list)
        self.prev_set: Set[int] = set()
        self.last_sample_index = -1

    def update(
        self,
        sample_index: int,
        present: Set[int],
        frame_label: int | None = None,
        n_paths: int = 0,
    ) -> None:
        entries = present - self.prev_set
        label = sample_index if frame_label is None else frame_label

        self.frame_rows.append(
            {
                "frame": label,
                "n_residues": len(present),
                "n_paths": n_paths,
                "residues": ";".join(self.records[idx].label for idx in sorted(present)),
            }
        )
        self.frame_labels.append(label)
        self.n_present.append(len(present))
        self.n_paths.append(n_paths)

        for resindex in present:
            self.frames_present_count[resindex] += 1
            if resindex not in self.first_seen:
                self.first_seen[resindex] = label
            self.last_seen[resindex] = label
        for resindex in entries:
            self.entries_count[resindex] += 1

        for resindex in list(self.current_cont.keys()):
            if resindex not in present:
                start = self.current_cont.pop(resindex)
                self.cont_lengths[resindex].append(sample_index - start)
        for resindex in present:
            if resindex not in self.current_cont:
                self.current_cont[resindex] = sample_index

        for resindex in present:
            if resindex not in self.current_inter:
                self.current_inter[resindex] = sample_index
            elif sample_index - self.last_present[resindex] > self.gap_tolerance + 1:
                start = self.current_inter[resindex]
                end = self.last_present[resindex]
                self.inter_lengths[resindex].append(end - start + 1)
                self.current_inter[resindex] = sample_index
            self.last_present[resindex] = sample_index

        self.prev_set = present
        self.last_sample_index = sample_index

    def finalize(self) -> Dict[str, object]:
        n_frames = len(self.frame_labels)
        if n_frames == 0:
            raise ValueError("No frames provided for stats")

        for resindex, start in self.current_cont.items():
            self.cont_lengths[resindex].append(self.last_sample_index - start + 1)
        self.current_cont = {}
        for resindex, start in self.current_inter.items():
            self.inter_lengths[resindex].append(self.last_present[resindex] - start + 1)
        self.current_inter = {}

        per_residue_rows = []
        for resindex in sorted(self.records):
            record = self.records[resindex]
            present_frames = self.frames_present_count.get(resindex, 0)
            cont_list = self.cont_lengths.get(resindex, [])
            inter_list = self.inter_lengths.get(resindex, [])
            per_residue_rows.append(
                {
                    "label": record.label,
                    "resindex": resindex,
                    "chain": record.chain,
                    "resname": record.resname,
                    "resid": record.resid,
                    "frames_present": present_frames,
                    "occupancy_pct": 100.0 * present_frames / n_frames,
                    "first_seen_frame": self.first_seen.get(resindex),
                    "last_seen_frame": self.last_seen.get(resindex),
                    "events": self.entries_count.get(resindex, 0),
                    "mean_run_cont": mean(cont_list) if cont_list else 0.0,
                    "max_run_cont": max(cont_list) if cont_list else 0,
                    "mean_run_inter": mean(inter_list) if inter_list else 0.0,
                    "max_run_inter": max(inter_list) if inter_list else 0,
                }
            )
        per_residue_df = pd.DataFrame(per_residue_rows)
        if not per_residue_df.empty:
            per_residue_df.sort_values(
                by=["occupancy_pct", "resindex"], ascending=[False, True], inplace=True
            )

        bridged_frames = sum(1 for count in self.n_present if count > 0)
        summary = {
            "n_frames": n_frames,
            "frame_stride": self.frame_stride,
            "gap_tolerance": self.gap_tolerance,
            "n_residues": len(self.records),
            "bridged_fraction": bridged_frames / n_frames,
            "mean_residues_per_frame": float(np.mean(self.n_present)),
            "max_residues_per_frame": int(np.max(self.n_present)),
            "mean_paths_per_frame": float(np.mean(self.n_paths)),
            "max_paths_per_frame": int(np.max(self.n_paths)),
        }
        return {
            "per_frame": pd.DataFrame(self.frame_rows),
            "per_residue": per_residue_df,
            "summary": summary,
            "residence_cont": dict(self.cont_lengths),
            "residence_inter": dict(self.inter_lengths),
        }
