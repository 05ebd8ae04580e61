"""Report generation for HBridgeLab."""
from __future__ import annotations

import os
from typing import Dict, List

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np

from hbridge.analysis import AnalysisResult, BridgeResult
from hbridge.models import ProjectConfig
from hbridge.serialization import to_jsonable


def generate_report(result: AnalysisResult, project: ProjectConfig, command_line: str | None = None) -> str:
    output_dir = project.outputs.output_dir
    report_dir = os.path.join(output_dir, "report")
    os.makedirs(report_dir, exist_ok=True)

    report_lines: List[str] = []
    report_lines.append("# HBridgeLab Report")
    report_lines.append("")
    report_lines.append("## Reproducibility")
    report_lines.append(f"- Command line: {command_line or 'N/A'}")
    report_lines.append("- Project file: metadata.json")
    report_lines.append(f"- Output directory: {output_dir}")
    if result.cancelled:
        report_lines.append("- Run was cancelled; results cover the completed frames only.")
    report_lines.append("")
    report_lines.append("### Package Versions")
    for name, version in _package_versions().items():
        report_lines.append(f"- {name}: {version}")
    report_lines.append("")
    if result.warnings:
        report_lines.append("### Warnings")
        for warning in result.warnings:
            report_lines.append(f"- {warning}")
        report_lines.append("")

    for name, bridge in result.bridge_results.items():
        report_lines.append(f"## Bridge: {name}")
        report_lines.append("")
        report_lines.append("### Summary")
        report_lines.append("```")
        report_lines.append(str(to_jsonable(bridge.summary)))
        report_lines.append("```")
        report_lines.append("")
        if not bridge.per_residue.empty:
            report_lines.append("### Top residues")
            for _, row in bridge.per_residue.head(10).iterrows():
                report_lines.append(
                    f"- {row['label']}: {int(row['frames_present'])} frames "
                    f"({row['occupancy_pct']:.1f}%)"
                )
            report_lines.append("")

        for fig in _plot_bridge_summary(bridge, report_dir, name):
            report_lines.append(f"![{name}]({os.path.basename(fig)})")
        report_lines.append("")

    report_path = os.path.join(report_dir, "report.md")
    with open(report_path, "w", encoding="utf-8") as handle:
        handle.write("\n".join(report_lines))
    return report_path


def _package_versions() -> Dict[str, str]:
    versions = {}
    for name in ("MDAnalysis", "numpy", "pandas", "matplotlib"):
        try:
            module = __import__(name)
        except ImportError:
            versions[name] = "not available"
            continue
        versions[name] = getattr(module, "__version__", "unknown")
    return versions


def _plot_bridge_summary(bridge: BridgeResult, report_dir: str, name: str) -> List[str]:
    fig_paths: List[str] = []

    per_residue = bridge.per_residue
    if not per_residue.empty:
        top = per_residue.head(15)
        fig, ax = plt.subplots(figsize=(6, 3))
        ax.barh(top["label"], top["occupancy_pct"], color="#dd6b20")
        ax.set_xlabel("Frames bridged (%)")
        ax.set_title(f"{name}: bridged residues")
        ax.invert_yaxis()
        fig.tight_layout()
        path = os.path.join(report_dir, f"{name}_occupancy.png")
        fig.savefig(path, dpi=200)
        plt.close(fig)
        fig_paths.append(path)

    presence = bridge.presence
    if len(presence) > 1 and presence.shape[1] > 1:
        matrix = presence.iloc[:-1, 1:].to_numpy(dtype=float)
        fig, ax = plt.subplots(figsize=(8, 3))
        ax.imshow(matrix.T, aspect="auto", interpolation="nearest", cmap="Greys")
        ax.set_yticks(np.arange(matrix.shape[1]))
        ax.set_yticklabels(list(presence.columns[1:]), fontsize=6)
        ax.set_xlabel("Sample")
        ax.set_title(f"{name}: bridge presence")
        fig.tight_layout()
        path = os.path.join(report_dir, f"{name}_presence.png")
        fig.savefig(path, dpi=200)
        plt.close(fig)
        fig_paths.append(path)

    return fig_paths
