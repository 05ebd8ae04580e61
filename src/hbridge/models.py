"""Data models for HBridgeLab project and analysis configuration."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


DETECTOR_BACKENDS = ("geometric", "hbond_analysis")


@dataclass
class SelectionSpec:
    label: str
    selection: Optional[str] = None
    atom_indices: Optional[List[int]] = None
    resid: Optional[int] = None
    resname: Optional[str] = None
    atomname: Optional[str] = None
    segid: Optional[str] = None
    chain: Optional[str] = None
    updating: bool = False
    expect_count: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "label": self.label,
            "selection": self.selection,
            "atom_indices": self.atom_indices,
            "resid": self.resid,
            "resname": self.resname,
            "atomname": self.atomname,
            "segid": self.segid,
            "chain": self.chain,
            "updating": self.updating,
            "expect_count": self.expect_count,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SelectionSpec":
        return cls(
            label=data.get("label", "selection"),
            selection=data.get("selection"),
            atom_indices=data.get("atom_indices"),
            resid=data.get("resid"),
            resname=data.get("resname"),
            atomname=data.get("atomname"),
            segid=data.get("segid"),
            chain=data.get("chain"),
            updating=bool(data.get("updating", False)),
            expect_count=data.get("expect_count"),
        )


@dataclass
class HBondCriteria:
    """Geometric criteria and search depth for one bridge search.

    ``radius`` bounds the atoms considered around the source selection,
    ``distance`` is the donor-acceptor cutoff and ``angle`` the minimum
    donor-hydrogen-acceptor angle in degrees. ``max_waters`` is the number
    of intermediate residues allowed between source and target.
    """
    radius: float = 5.0
    distance: float = 3.0
    angle: float = 120.0
    max_waters: int = 2
    unit: str = "A"
    backend: str = "geometric"
    donors_selection: str = "name N* O*"
    hydrogens_selection: str = "name H*"
    acceptors_selection: str = "name N* O*"
    dh_cutoff: float = 1.2

    def __post_init__(self) -> None:
        if self.max_waters < 0:
            raise ValueError(f"max_waters must be >= 0, got {self.max_waters}")
        if self.radius <= 0:
            raise ValueError(f"radius must be positive, got {self.radius}")
        if self.distance <= 0:
            raise ValueError(f"distance must be positive, got {self.distance}")
        if self.backend not in DETECTOR_BACKENDS:
            raise ValueError(
                f"Unsupported detector backend: {self.backend} "
                f"(expected one of {', '.join(DETECTOR_BACKENDS)})"
            )

    @property
    def max_steps(self) -> int:
        return self.max_waters + 2

    def to_dict(self) -> Dict[str, Any]:
        return {
            "radius": self.radius,
            "distance": self.distance,
            "angle": self.angle,
            "max_waters": self.max_waters,
            "unit": self.unit,
            "backend": self.backend,
            "donors_selection": self.donors_selection,
            "hydrogens_selection": self.hydrogens_selection,
            "acceptors_selection": self.acceptors_selection,
            "dh_cutoff": self.dh_cutoff,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HBondCriteria":
        defaults = cls()
        return cls(
            radius=float(data.get("radius", defaults.radius)),
            distance=float(data.get("distance", data.get("d_a_cutoff", defaults.distance))),
            angle=float(data.get("angle", data.get("d_h_a_angle", defaults.angle))),
            max_waters=int(data.get("max_waters", data.get("waters", defaults.max_waters))),
            unit=data.get("unit", defaults.unit),
            backend=data.get("backend", defaults.backend),
            donors_selection=data.get(
                "donors_selection", data.get("donors_sel", defaults.donors_selection)
            ),
            hydrogens_selection=data.get(
                "hydrogens_selection", data.get("hydrogens_sel", defaults.hydrogens_selection)
            ),
            acceptors_selection=data.get(
                "acceptors_selection", data.get("acceptors_sel", defaults.acceptors_selection)
            ),
            dh_cutoff=float(data.get("dh_cutoff", defaults.dh_cutoff)),
        )


@dataclass
class BridgeConfig:
    name: str
    source: str
    target: str
    criteria: HBondCriteria = field(default_factory=HBondCriteria)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "source": self.source,
            "target": self.target,
            "criteria": self.criteria.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BridgeConfig":
        criteria_data = data.get("criteria")
        if criteria_data is None:
            # Flat layout: criteria keys sit next to the selection labels.
            criteria_data = data
        return cls(
            name=data.get("name", "bridge"),
            source=data.get("source", data.get("selection_a", "source")),
            target=data.get("target", data.get("selection_b", "target")),
            criteria=HBondCriteria.from_dict(criteria_data),
        )


@dataclass
class AnalysisOptions:
    frame_start: int = 0
    frame_stop: Optional[int] = None
    stride: int = 1
    gap_tolerance: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "frame_start": self.frame_start,
            "frame_stop": self.frame_stop,
            "stride": self.stride,
            "gap_tolerance": self.gap_tolerance,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalysisOptions":
        return cls(
            frame_start=int(data.get("frame_start", 0)),
            frame_stop=data.get("frame_stop"),
            stride=int(data.get("stride", 1)),
            gap_tolerance=int(data.get("gap_tolerance", 0)),
        )


@dataclass
class InputConfig:
    topology: str
    trajectory: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "topology": self.topology,
            "trajectory": self.trajectory,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InputConfig":
        return cls(
            topology=data.get("topology", ""),
            trajectory=data.get("trajectory"),
        )


@dataclass
class OutputConfig:
    output_dir: str
    write_paths: bool = True
    write_parquet: bool = False
    report: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "output_dir": self.output_dir,
            "write_paths": self.write_paths,
            "write_parquet": self.write_parquet,
            "report": self.report,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OutputConfig":
        return cls(
            output_dir=data.get("output_dir", "results"),
            write_paths=bool(data.get("write_paths", True)),
            write_parquet=bool(data.get("write_parquet", False)),
            report=bool(data.get("report", False)),
        )


@dataclass
class ProjectConfig:
    inputs: InputConfig
    selections: Dict[str, SelectionSpec]
    bridges: List[BridgeConfig]
    analysis: AnalysisOptions = field(default_factory=AnalysisOptions)
    outputs: OutputConfig = field(default_factory=lambda: OutputConfig(output_dir="results"))
    version: str = "1.0"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "inputs": self.inputs.to_dict(),
            "selections": {name: sel.to_dict() for name, sel in self.selections.items()},
            "bridges": [bridge.to_dict() for bridge in self.bridges],
            "analysis": self.analysis.to_dict(),
            "outputs": self.outputs.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProjectConfig":
        selections_raw = data.get("selections", {}) or {}
        selections = {}
        for name, sel in selections_raw.items():
            if isinstance(sel, str):
                # Shorthand: "ligand": "resname LIG"
                sel = {"label": name, "selection": sel}
            spec = SelectionSpec.from_dict(sel)
            spec.label = name
            selections[name] = spec
        bridges = [BridgeConfig.from_dict(item) for item in data.get("bridges", [])]
        return cls(
            inputs=InputConfig.from_dict(data.get("inputs", {})),
            selections=selections,
            bridges=bridges,
            analysis=AnalysisOptions.from_dict(data.get("analysis", {})),
            outputs=OutputConfig.from_dict(data.get("outputs", {})),
            version=data.get("version", "1.0"),
        )


def default_project(topology: str, trajectory: Optional[str]) -> ProjectConfig:
    return ProjectConfig(
        inputs=InputConfig(topology=topology, trajectory=trajectory),
        selections={},
        bridges=[],
        analysis=AnalysisOptions(),
        outputs=OutputConfig(output_dir="results"),
    )
