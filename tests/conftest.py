import os
import sys

import numpy as np
import pytest

# Add src to path for all tests
src_path = os.path.abspath(os.path.join(os.path.dirname(__file__), "../src"))
if src_path not in sys.path:
    sys.path.insert(0, src_path)


# Residues: 0 LIG (O-H donor), 1 water bridging LIG and SER, 2 SER, 3 far water.
# In frames 0 and 2 the ligand hydroxyl donates to water 1, which donates to
# the SER hydroxyl oxygen 5.6 A away from the ligand. In frame 1 water 1 is
# moved out of range, so nothing bridges.
_BRIDGED = [
    [0.0, 0.0, 0.0],
    [0.97, 0.0, 0.0],
    [2.8, 0.0, 0.0],
    [3.77, 0.0, 0.0],
    [2.8, 0.97, 0.0],
    [5.6, 0.0, 0.0],
    [6.6, 0.0, 0.0],
    [20.0, 0.0, 0.0],
    [20.97, 0.0, 0.0],
    [20.0, 0.97, 0.0],
]
_WATER_AWAY = [list(row) for row in _BRIDGED]
_WATER_AWAY[2] = [20.0, 10.0, 0.0]
_WATER_AWAY[3] = [20.97, 10.0, 0.0]
_WATER_AWAY[4] = [20.0, 10.97, 0.0]


def make_bridge_universe():
    import MDAnalysis as mda

    u = mda.Universe.empty(
        10,
        n_residues=4,
        atom_resindex=[0, 0, 1, 1, 1, 2, 2, 3, 3, 3],
        residue_segindex=[0, 0, 0, 0],
        trajectory=True,
    )
    u.add_TopologyAttr("name", ["O1", "H1", "OW", "HW1", "HW2", "OG", "CA", "OW", "HW1", "HW2"])
    u.add_TopologyAttr("resname", ["LIG", "HOH", "SER", "HOH"])
    u.add_TopologyAttr("resid", [1, 2, 3, 4])
    u.add_TopologyAttr("segid", ["SYS"])
    u.add_TopologyAttr("chainID", ["L", "L", "W", "W", "W", "A", "A", "W", "W", "W"])
    coords = np.array([_BRIDGED, _WATER_AWAY, _BRIDGED], dtype=np.float32)
    u.load_new(coords, order="fac")
    return u


def make_labelled_universe(n_residues=13):
    """One atom per residue, resid = resindex + 1, chain A."""
    import MDAnalysis as mda

    u = mda.Universe.empty(
        n_residues,
        n_residues=n_residues,
        atom_resindex=list(range(n_residues)),
        residue_segindex=[0] * n_residues,
        trajectory=True,
    )
    u.add_TopologyAttr("name", ["CA"] * n_residues)
    u.add_TopologyAttr("resname", ["ALA"] * n_residues)
    u.add_TopologyAttr("resid", list(range(1, n_residues + 1)))
    u.add_TopologyAttr("segid", ["PROA"])
    u.add_TopologyAttr("chainID", ["A"] * n_residues)
    return u


@pytest.fixture
def bridge_universe():
    pytest.importorskip("MDAnalysis")
    return make_bridge_universe()


@pytest.fixture
def labelled_universe():
    pytest.importorskip("MDAnalysis")
    return make_labelled_universe()


@pytest.fixture
def bridge_project(tmp_path):
    """ProjectConfig matching ``bridge_universe``."""
    from hbridge.models import (
        AnalysisOptions,
        BridgeConfig,
        HBondCriteria,
        InputConfig,
        OutputConfig,
        ProjectConfig,
        SelectionSpec,
    )

    return ProjectConfig(
        inputs=InputConfig(topology="synthetic"),
        selections={
            "ligand": SelectionSpec(label="ligand", selection="resname LIG"),
            "serine": SelectionSpec(label="serine", selection="resname SER"),
        },
        bridges=[
            BridgeConfig(
                name="lig_ser",
                source="ligand",
                target="serine",
                criteria=HBondCriteria(max_waters=2),
            )
        ],
        analysis=AnalysisOptions(),
        outputs=OutputConfig(output_dir=str(tmp_path / "results")),
    )
