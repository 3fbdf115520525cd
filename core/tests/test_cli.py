"""
Tests for the pipeflow command-line interface.
"""

import json
import logging
from pathlib import Path

import pytest

from pipeflow.cli import main

CHAIN = {
    "input": "draft a note",
    "nodes": [
        {"id": "a", "agent_ref": "writer"},
        {"id": "b", "agent_ref": "editor"},
    ],
    "edges": [{"id": "e1", "source": "a", "target": "b"}],
    "agents": [
        {"id": "writer", "name": "Writer", "system_prompt": "You write."},
        {"id": "editor", "name": "Editor", "system_prompt": "You edit."},
    ],
}

LOOP = {
    "nodes": [
        {"id": "a", "agent_ref": "writer"},
        {"id": "b", "agent_ref": "editor"},
    ],
    "edges": [
        {"id": "e1", "source": "a", "target": "b"},
        {"id": "e2", "source": "b", "target": "a"},
    ],
    "agents": CHAIN["agents"],
}


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("PIPEFLOW_CONFIG", str(tmp_path / "missing.json"))
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def write_graph(tmp_path, data, name="graph.json"):
    path = tmp_path / name
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


def test_levels_prints_one_line_per_level(tmp_path, capsys):
    diamond = {
        "nodes": [{"id": n, "agent_ref": n} for n in ("a", "b", "c", "d")],
        "edges": [
            {"id": "e1", "source": "a", "target": "b"},
            {"id": "e2", "source": "a", "target": "c"},
            {"id": "e3", "source": "b", "target": "d"},
            {"id": "e4", "source": "c", "target": "d"},
        ],
    }

    code = main(["levels", write_graph(tmp_path, diamond)])

    assert code == 0
    assert capsys.readouterr().out.splitlines() == ["Level 0: a", "Level 1: b, c", "Level 2: d"]


def test_levels_of_cyclic_graph_fails(tmp_path, capsys):
    code = main(["levels", write_graph(tmp_path, LOOP)])

    assert code == 1
    assert "e2" in capsys.readouterr().err


def test_cycles_reports_back_edges(tmp_path, capsys):
    code = main(["cycles", write_graph(tmp_path, LOOP)])

    out = capsys.readouterr().out
    assert code == 0
    assert "  e2: b -> a" in out
    assert "Cycle nodes: a, b" in out


def test_cycles_on_acyclic_graph(tmp_path, capsys):
    assert main(["cycles", write_graph(tmp_path, CHAIN)]) == 0
    assert capsys.readouterr().out.strip() == "No cycles"


def test_run_with_mock_backend_prints_final_output(tmp_path, capsys):
    code = main(["run", write_graph(tmp_path, CHAIN), "--mock", "--quiet"])

    out = capsys.readouterr().out
    assert code == 0
    assert out.startswith("[Editor]: [You edit.]")
    assert "draft a note" in out


def test_run_prints_progress_to_stderr(tmp_path, capsys):
    main(["run", write_graph(tmp_path, CHAIN), "--mock", "--input", "hi"])

    err = capsys.readouterr().err
    assert "Writer <a>: running" in err
    assert "Editor <b>: completed" in err


def test_run_json_output(tmp_path, capsys):
    code = main(["run", write_graph(tmp_path, CHAIN), "--mock", "--quiet", "--json"])

    state = json.loads(capsys.readouterr().out)
    assert code == 0
    assert state["status"] == "completed"
    assert set(state["results"]) == {"a", "b"}
    assert state["total_tokens"] > 0


def test_run_cyclic_graph_uses_detected_back_edges(tmp_path, capsys):
    path = write_graph(tmp_path, LOOP)

    code = main(["run", path, "-i", "go", "--iterations", "2", "--mock", "--quiet", "--json"])

    state = json.loads(capsys.readouterr().out)
    assert code == 0
    assert "a__iter1" in state["results"]
    assert state["loop_info"]["total_iterations"] == 2


def test_run_requires_input(tmp_path, capsys):
    code = main(["run", write_graph(tmp_path, LOOP), "--mock"])

    assert code == 2
    assert "no input" in capsys.readouterr().err


def test_run_rejects_out_of_range_iterations(tmp_path, capsys):
    code = main(["run", write_graph(tmp_path, CHAIN), "--mock", "--iterations", "11"])

    assert code == 2
    assert "--iterations" in capsys.readouterr().err


def test_invalid_graph_file_exits_with_error(tmp_path, capsys):
    bad = {
        "nodes": [{"id": "a", "agent_ref": "x"}],
        "edges": [{"id": "e1", "source": "a", "target": "zz"}],
    }

    code = main(["levels", write_graph(tmp_path, bad)])

    assert code == 2
    assert "Error:" in capsys.readouterr().err


@pytest.mark.parametrize("name", ["research_digest.json", "review_loop.json"])
def test_bundled_examples_run_offline(name, capsys):
    path = Path(__file__).resolve().parents[2] / "examples" / name

    code = main(["run", str(path), "--mock", "--quiet", "--iterations", "2", "--json"])

    state = json.loads(capsys.readouterr().out)
    assert code == 0
    assert state["status"] == "completed"
    assert state["final_output"]
