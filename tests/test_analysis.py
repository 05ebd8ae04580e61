import json
import logging

import pytest

pytest.importorskip("MDAnalysis")

from hbridge.analysis import BridgeAnalysisEngine, load_project_json, paths_dataframe
from hbridge.export import export_results
from hbridge.models import SelectionSpec
from hbridge.topology import TopologyView


def test_engine_run_on_bridge_system(bridge_universe, bridge_project):
    result = BridgeAnalysisEngine(bridge_project).run(universe=bridge_universe)

    assert result.frame_labels == [0, 1, 2]
    assert not result.cancelled
    bridge = result.bridge_results["lig_ser"]
    assert bridge.trajectory.per_frame_terminal_residues == [[2], [], [2]]
    assert list(bridge.presence.columns) == ["frame", "A:SER3"]
    assert bridge.presence["A:SER3"].tolist() == [1, 0, 1, 2]

    summary = bridge.summary
    assert summary["n_frames"] == 3
    assert summary["n_residues"] == 1
    assert summary["n_paths"] == 2
    assert summary["bridged_fraction"] == pytest.approx(2 / 3)
    assert summary["criteria"]["max_waters"] == 2

    assert bridge.paths["path_labels"].tolist() == ["L:LIG1;W:HOH2;A:SER3"] * 2
    assert bridge.paths["n_bridging"].tolist() == [1, 1]
    assert bridge.per_residue["label"].tolist() == ["A:SER3"]


def test_engine_logs_progress(bridge_universe, bridge_project, caplog):
    logger = logging.getLogger("hbridge.test")
    seen = []
    with caplog.at_level(logging.INFO, logger="hbridge.test"):
        BridgeAnalysisEngine(bridge_project).run(
            progress=lambda current, total, message: seen.append((current, total)),
            logger=logger,
            universe=bridge_universe,
        )
    assert seen == [(1, 3), (2, 3), (3, 3)]
    assert "Processing H-bond bridge: lig_ser..." in caplog.text


def test_engine_stride_and_window(bridge_universe, bridge_project):
    bridge_project.analysis.stride = 2
    result = BridgeAnalysisEngine(bridge_project).run(universe=bridge_universe)
    bridge = result.bridge_results["lig_ser"]
    assert result.frame_labels == [0, 2]
    assert bridge.presence["frame"].tolist() == [0, 2, "total"]
    assert bridge.summary["frame_stride"] == 2

    bridge_project.analysis.stride = 1
    bridge_project.analysis.frame_start = 1
    bridge_project.analysis.frame_stop = 2
    result = BridgeAnalysisEngine(bridge_project).run(universe=bridge_universe)
    bridge = result.bridge_results["lig_ser"]
    assert result.frame_labels == [1]
    assert bridge.summary["n_residues"] == 0
    assert bridge.paths.empty


def test_engine_cancel(bridge_universe, bridge_project):
    result = BridgeAnalysisEngine(bridge_project).run(
        cancel_flag=lambda: True, universe=bridge_universe
    )
    assert result.cancelled
    bridge = result.bridge_results["lig_ser"]
    assert bridge.summary["n_frames"] == 0
    assert bridge.summary["cancelled"] is True


def test_engine_rejects_failed_preflight(bridge_universe, bridge_project):
    bridge_project.bridges[0].target = "missing"
    with pytest.raises(ValueError, match="Preflight failed"):
        BridgeAnalysisEngine(bridge_project).run(universe=bridge_universe)


def test_paths_dataframe_columns(bridge_universe, bridge_project):
    result = BridgeAnalysisEngine(bridge_project).run(universe=bridge_universe)
    df = paths_dataframe(result.bridge_results["lig_ser"].trajectory, TopologyView(bridge_universe))
    assert list(df.columns[:6]) == ["frame", "time", "source", "target", "n_bridging", "path"]
    assert df["path"].tolist() == ["0;1;2", "0;1;2"]
    assert df["frame"].tolist() == [0, 2]


def test_export_results_writes_tables(bridge_universe, bridge_project):
    result = BridgeAnalysisEngine(bridge_project).run(universe=bridge_universe)
    written = export_results(result, bridge_project)

    output_dir = bridge_project.outputs.output_dir
    with open(written["lig_ser:presence"], "r", encoding="utf-8") as handle:
        assert handle.read() == "frame,A:SER3\n0,1\n1,0\n2,1\ntotal,2\n"
    for key in ("lig_ser:paths", "lig_ser:per_frame", "lig_ser:per_residue", "lig_ser:summary"):
        assert written[key].startswith(output_dir)

    with open(written["metadata"], "r", encoding="utf-8") as handle:
        metadata = json.load(handle)
    assert metadata["frame_labels"] == [0, 1, 2]
    assert metadata["project"]["bridges"][0]["name"] == "lig_ser"

    with open(written["lig_ser:summary"], "r", encoding="utf-8") as handle:
        summary = json.load(handle)
    assert summary["n_paths"] == 2


def test_export_skips_paths_when_disabled(bridge_universe, bridge_project):
    bridge_project.outputs.write_paths = False
    result = BridgeAnalysisEngine(bridge_project).run(universe=bridge_universe)
    written = export_results(result, bridge_project)
    assert "lig_ser:paths" not in written


def test_generate_report(bridge_universe, bridge_project):
    pytest.importorskip("matplotlib")
    from hbridge.report import generate_report

    result = BridgeAnalysisEngine(bridge_project).run(universe=bridge_universe)
    report_path = generate_report(result, bridge_project, command_line="hbridgelab run")
    with open(report_path, "r", encoding="utf-8") as handle:
        text = handle.read()
    assert "## Bridge: lig_ser" in text
    assert "- A:SER3: 2 frames (66.7%)" in text


def test_load_project_json_and_yaml(tmp_path, bridge_project):
    json_path = tmp_path / "project.json"
    json_path.write_text(json.dumps(bridge_project.to_dict()), encoding="utf-8")
    loaded = load_project_json(str(json_path))
    assert loaded.to_dict() == bridge_project.to_dict()

    yaml_path = tmp_path / "project.yaml"
    yaml_path.write_text(
        "inputs:\n"
        "  topology: system.pdb\n"
        "selections:\n"
        "  ligand: resname LIG\n"
        "  protein: protein\n"
        "bridges:\n"
        "  - name: lig_prot\n"
        "    source: ligand\n"
        "    target: protein\n"
        "    criteria:\n"
        "      max_waters: 1\n",
        encoding="utf-8",
    )
    loaded = load_project_json(str(yaml_path))
    assert loaded.selections["protein"].selection == "protein"
    assert loaded.bridges[0].criteria.max_waters == 1


def test_engine_with_updating_target(bridge_universe, bridge_project):
    bridge_project.selections["serine"] = SelectionSpec(
        label="serine",
        selection="resname SER and around 6.0 resname LIG",
        updating=True,
    )
    result = BridgeAnalysisEngine(bridge_project).run(universe=bridge_universe)
    bridge = result.bridge_results["lig_ser"]
    assert bridge.trajectory.per_frame_terminal_residues == [[2], [], [2]]
    assert list(bridge.presence.columns) == ["frame", "A:SER3"]
