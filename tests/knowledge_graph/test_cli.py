"""
CLI tests against the in-memory backend.
"""

import json

import pytest

from src.knowledge_graph.cli import main


@pytest.fixture
def batch_file(tmp_path):
    path = tmp_path / "batch.json"
    path.write_text(
        json.dumps(
            {
                "extracted_nodes": {
                    "article": {"id": "a1", "title": "A1", "content": "Body"},
                    "people": [{"id": "p1", "name": "P1"}],
                    "relationships": [
                        {
                            "kind": "MentionsPerson",
                            "start_node_id": "a1",
                            "end_node_id": "p1",
                            "evidence": "quoted speech",
                        }
                    ],
                }
            }
        )
    )
    return path


@pytest.fixture(autouse=True)
def memory_env(monkeypatch):
    monkeypatch.setenv("KG_BACKEND", "memory")
    monkeypatch.delenv("KG_LOG_FILE", raising=False)


class TestMaterializeCommand:
    def test_materialize_and_persist(self, batch_file, tmp_path, capsys):
        graph_file = tmp_path / "graph.json"

        code = main(["materialize", str(batch_file), "--graph-file", str(graph_file)])

        assert code == 0
        stats = json.loads(capsys.readouterr().out)
        assert stats["entities_created"] == 2
        assert stats["edges_created"] == 1
        assert graph_file.exists()

    def test_rerun_merges_person(self, batch_file, tmp_path, capsys):
        graph_file = tmp_path / "graph.json"
        main(["materialize", str(batch_file), "--graph-file", str(graph_file)])
        capsys.readouterr()

        main(["materialize", str(batch_file), "--graph-file", str(graph_file)])
        stats = json.loads(capsys.readouterr().out)

        assert stats["entities_created"] == 1
        assert stats["entities_updated"] == 1

        main(["stats", "--graph-file", str(graph_file)])
        graph_stats = json.loads(capsys.readouterr().out)
        assert graph_stats["node_counts"] == {"Article": 2, "Person": 1}
        assert graph_stats["edge_counts"] == {"MENTIONS_PERSON": 2}

    def test_list_of_batches(self, tmp_path, capsys):
        path = tmp_path / "batches.json"
        path.write_text(
            json.dumps([{"article": {"id": "a1", "title": "A1"}}, {"article": {"id": "a1", "title": "A2"}}])
        )

        assert main(["materialize", str(path)]) == 0
        results = json.loads(capsys.readouterr().out)
        assert [r["entities_created"] for r in results] == [1, 1]

    def test_failed_batch_keeps_earlier_batches(self, tmp_path, capsys):
        path = tmp_path / "batches.json"
        path.write_text(json.dumps([{"article": {"id": "a1", "title": "A1"}}, {"nodes": {"people": []}}]))
        graph_file = tmp_path / "graph.json"

        assert main(["materialize", str(path), "--graph-file", str(graph_file)]) == 1
        capsys.readouterr()

        main(["stats", "--graph-file", str(graph_file)])
        graph_stats = json.loads(capsys.readouterr().out)
        assert graph_stats["total_nodes"] == 1
        assert graph_stats["node_counts"] == {"Article": 1}

    def test_malformed_batch(self, tmp_path, capsys):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"nodes": {"people": []}}))

        assert main(["materialize", str(path)]) == 1
        assert "ERROR" in capsys.readouterr().err

    def test_unreadable_batch(self, tmp_path):
        assert main(["materialize", str(tmp_path / "missing.json")]) == 1


class TestOtherCommands:
    def test_clear_requires_confirmation(self, capsys):
        assert main(["clear"]) == 2
        assert "--yes" in capsys.readouterr().err

    def test_clear(self, batch_file, tmp_path, capsys):
        graph_file = tmp_path / "graph.json"
        main(["materialize", str(batch_file), "--graph-file", str(graph_file)])

        assert main(["clear", "--yes", "--graph-file", str(graph_file)]) == 0
        capsys.readouterr()
        main(["stats", "--graph-file", str(graph_file)])
        assert json.loads(capsys.readouterr().out)["total_nodes"] == 0

    def test_query_needs_neo4j(self, capsys):
        assert main(["query", "MATCH (n) RETURN n"]) == 1
        assert "neo4j backend" in capsys.readouterr().err

    def test_init_schema_memory(self, capsys):
        assert main(["init-schema"]) == 0
        assert "Schema ready" in capsys.readouterr().out

    def test_bad_config_file(self, tmp_path):
        assert main(["--config", str(tmp_path / "missing.yaml"), "stats"]) == 2
