import numpy as np
import pytest

pytest.importorskip("MDAnalysis")
import MDAnalysis as mda

from hbridge.detection import (
    GeometricHBondDetector,
    HBondAnalysisDetector,
    _init_hbond_analysis,
    build_detector,
)
from hbridge.models import HBondCriteria


def _pair_universe(acceptor_position):
    """Water donor O-H along +x and a single acceptor oxygen."""
    u = mda.Universe.empty(3, n_residues=2, atom_resindex=[0, 0, 1], residue_segindex=[0, 0], trajectory=True)
    u.add_TopologyAttr("name", ["OW", "HW1", "O"])
    u.add_TopologyAttr("resname", ["HOH", "ACE"])
    u.add_TopologyAttr("resid", [1, 2])
    coords = np.array([[[0.0, 0.0, 0.0], [0.97, 0.0, 0.0], acceptor_position]], dtype=np.float32)
    u.load_new(coords, order="fac")
    return u


def test_linear_hbond_detected():
    u = _pair_universe([2.8, 0.0, 0.0])
    pairs = GeometricHBondDetector().detect(u.atoms, max_distance=3.0, min_angle=120.0)
    assert pairs == [(0, 2)]


def test_bent_hbond_rejected_by_angle():
    # D-H-A angle is about 71 degrees
    u = _pair_universe([0.0, 2.8, 0.0])
    detector = GeometricHBondDetector()
    assert detector.detect(u.atoms, max_distance=3.0, min_angle=120.0) == []
    assert detector.detect(u.atoms, max_distance=3.0, min_angle=60.0) == [(0, 2)]


def test_distance_cutoff_applies_to_donor_acceptor():
    u = _pair_universe([3.3, 0.0, 0.0])
    detector = GeometricHBondDetector()
    assert detector.detect(u.atoms, max_distance=3.0, min_angle=120.0) == []
    assert detector.detect(u.atoms, max_distance=3.5, min_angle=120.0) == [(0, 2)]


def test_detector_only_sees_candidates():
    u = _pair_universe([2.8, 0.0, 0.0])
    detector = GeometricHBondDetector()
    assert detector.detect(u.atoms[:2], max_distance=3.0, min_angle=120.0) == []
    assert detector.detect(u.atoms[:0], max_distance=3.0, min_angle=120.0) == []


def test_bridge_system_pairs(bridge_universe):
    bridge_universe.trajectory[0]
    pairs = GeometricHBondDetector().detect(bridge_universe.atoms, max_distance=3.0, min_angle=120.0)
    # ligand O -> water O, water O -> SER OG
    assert pairs == [(0, 2), (2, 5)]

    bridge_universe.trajectory[1]
    assert GeometricHBondDetector().detect(bridge_universe.atoms, 3.0, 120.0) == []


def test_build_detector_backends():
    assert isinstance(build_detector(HBondCriteria()), GeometricHBondDetector)
    detector = build_detector(HBondCriteria(backend="hbond_analysis", dh_cutoff=1.1))
    assert isinstance(detector, HBondAnalysisDetector)
    assert detector.dh_cutoff == 1.1


def test_hbond_analysis_angle_parameter_compliance():
    """_init_hbond_analysis maps the minimum angle onto the keyword the
    installed MDAnalysis expects (d_h_a_angle_cutoff in 2.x)."""
    u = mda.Universe.empty(n_atoms=10, n_residues=10, atom_resindex=range(10), trajectory=True)
    u.add_TopologyAttr("resnames", ["SOL"] * 10)
    u.add_TopologyAttr("names", ["O", "H", "O", "H", "O", "H", "O", "H", "O", "H"])
    u.add_TopologyAttr("charges", [0.0] * 10)
    u.add_TopologyAttr("masses", [16.0, 1.0] * 5)

    target_angle = 120.0
    hba = _init_hbond_analysis(
        u,
        donors_selection="name O",
        hydrogens_selection="name H",
        acceptors_selection="name O",
        distance=3.0,
        angle=target_angle,
        dh_cutoff=1.2,
    )

    found_angle = None
    for attr in ("d_h_a_angle", "d_h_a_angle_cutoff", "angle"):
        if hasattr(hba, attr):
            found_angle = getattr(hba, attr)
            break
    assert found_angle == target_angle


def test_hbond_analysis_detector_matches_geometric(bridge_universe):
    bridge_universe.trajectory[0]
    detector = HBondAnalysisDetector()
    pairs = detector.detect(bridge_universe.atoms, max_distance=3.0, min_angle=120.0)
    assert pairs == [(0, 2), (2, 5)]
    assert bridge_universe.trajectory.ts.frame == 0

    bridge_universe.trajectory[1]
    assert detector.detect(bridge_universe.atoms, 3.0, 120.0) == []
    assert bridge_universe.trajectory.ts.frame == 1


def test_hbond_analysis_detector_respects_candidates(bridge_universe):
    bridge_universe.trajectory[0]
    # without SER the only bond left is ligand -> water
    candidates = bridge_universe.select_atoms("resname LIG HOH")
    pairs = HBondAnalysisDetector().detect(candidates, max_distance=3.0, min_angle=120.0)
    assert pairs == [(0, 2)]
