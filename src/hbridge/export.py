"""Export utilities for HBridgeLab results."""
from __future__ import annotations

import json
import os
from typing import Dict

import pandas as pd

from hbridge.analysis import AnalysisResult
from hbridge.models import ProjectConfig
from hbridge.serialization import to_jsonable


def _atomic_replace(temp_path: str, final_path: str) -> None:
    os.replace(temp_path, final_path)


def _parquet_frame(df: pd.DataFrame) -> pd.DataFrame:
    """Copy of ``df`` that pyarrow accepts.

    Repeated column labels (two residues with the same ``chain:RESNAMEresid``)
    get a ``#<n>`` suffix, and object columns are cast to str since the
    presence "frame" column mixes ints with the "total" label.
    """
    seen: Dict[str, int] = {}
    names = []
    for name in df.columns:
        count = seen.get(name, 0)
        seen[name] = count + 1
        names.append(name if count == 0 else f"{name}#{count}")
    out = df.copy()
    out.columns = names
    return out.astype({col: str for col, dtype in out.dtypes.items() if dtype == object})


def _write_dataframe(df: pd.DataFrame, path_csv: str, write_parquet: bool) -> None:
    temp_csv = path_csv + ".tmp"
    df.to_csv(temp_csv, index=False, lineterminator="\n")
    _atomic_replace(temp_csv, path_csv)
    if write_parquet:
        parquet_path = os.path.splitext(path_csv)[0] + ".parquet"
        temp_parquet = parquet_path + ".tmp"
        _parquet_frame(df).to_parquet(temp_parquet, index=False)
        _atomic_replace(temp_parquet, parquet_path)


def _write_json(payload: object, path: str) -> None:
    temp_path = path + ".tmp"
    with open(temp_path, "w", encoding="utf-8") as handle:
        json.dump(to_jsonable(payload), handle, indent=2)
    _atomic_replace(temp_path, path)


def export_results(result: AnalysisResult, project: ProjectConfig) -> Dict[str, str]:
    output_dir = project.outputs.output_dir
    os.makedirs(output_dir, exist_ok=True)
    write_parquet = project.outputs.write_parquet
    written: Dict[str, str] = {}

    metadata_path = os.path.join(output_dir, "metadata.json")
    _write_json(
        {
            "project": project.to_dict(),
            "warnings": result.warnings,
            "preflight": result.preflight.to_dict(),
            "frame_labels": result.frame_labels,
            "cancelled": result.cancelled,
        },
        metadata_path,
    )
    written["metadata"] = metadata_path

    for name, bridge_result in result.bridge_results.items():
        bridge_dir = os.path.join(output_dir, f"bridge_{name}")
        os.makedirs(bridge_dir, exist_ok=True)

        presence_path = os.path.join(bridge_dir, "presence.csv")
        _write_dataframe(bridge_result.presence, presence_path, write_parquet)
        written[f"{name}:presence"] = presence_path

        if project.outputs.write_paths:
            paths_path = os.path.join(bridge_dir, "paths.csv")
            _write_dataframe(bridge_result.paths, paths_path, write_parquet)
            written[f"{name}:paths"] = paths_path

        if not bridge_result.per_frame.empty:
            per_frame_path = os.path.join(bridge_dir, "per_frame.csv")
            _write_dataframe(bridge_result.per_frame, per_frame_path, write_parquet)
            written[f"{name}:per_frame"] = per_frame_path

        if not bridge_result.per_residue.empty:
            per_residue_path = os.path.join(bridge_dir, "per_residue.csv")
            _write_dataframe(bridge_result.per_residue, per_residue_path, write_parquet)
            written[f"{name}:per_residue"] = per_residue_path

        summary_path = os.path.join(bridge_dir, "summary.json")
        _write_json(bridge_result.summary, summary_path)
        written[f"{name}:summary"] = summary_path

    return written
