"""
Unit tests for InMemoryGraphStore.
"""

import threading
from datetime import datetime, timezone

import pytest

from src.knowledge_graph.memory_store import InMemoryGraphStore
from src.knowledge_graph.models import EntityKind, EntityRef, RelationshipKind
from src.knowledge_graph.relationship_types import get_relationship_spec

NOW = datetime(2025, 3, 1, tzinfo=timezone.utc)


class TestTransactions:
    def setup_method(self):
        self.store = InMemoryGraphStore()

    def test_commit_makes_writes_visible(self):
        with self.store.transaction() as tx:
            handle = tx.create_entity(EntityKind.PERSON, {"name": "Ada"}, NOW)
            assert self.store.get_node(handle) is None

        assert self.store.get_node(handle).properties == {"name": "Ada", "createdAt": NOW}

    def test_exception_discards_writes(self):
        with pytest.raises(RuntimeError):
            with self.store.transaction() as tx:
                tx.create_entity(EntityKind.PERSON, {"name": "Ada"}, NOW)
                raise RuntimeError("boom")

        assert self.store.nodes == {}
        assert self.store.handles_by_key == {}

    def test_find_by_key_sees_committed_and_staged(self):
        with self.store.transaction() as tx:
            committed = tx.create_entity(EntityKind.ORGANISATION, {"name": "Acme"}, NOW)

        with self.store.transaction() as tx:
            staged = tx.create_entity(EntityKind.ORGANISATION, {"name": "Acme"}, NOW)
            assert tx.find_by_key(EntityKind.ORGANISATION, "Acme") == sorted([committed, staged])
            assert tx.find_by_key(EntityKind.PERSON, "Acme") == []

    def test_update_is_staged_until_commit(self):
        with self.store.transaction() as tx:
            handle = tx.create_entity(EntityKind.LOCATION, {"name": "Paris"}, NOW)

        with pytest.raises(RuntimeError):
            with self.store.transaction() as tx:
                tx.update_entity(EntityKind.LOCATION, handle, {"country": "France"}, NOW)
                raise RuntimeError("boom")
        assert "country" not in self.store.get_node(handle).properties

        with self.store.transaction() as tx:
            tx.update_entity(EntityKind.LOCATION, handle, {"country": "France"}, NOW)
        assert self.store.get_node(handle).properties["country"] == "France"

    def test_update_unknown_handle_raises(self):
        with pytest.raises(KeyError):
            with self.store.transaction() as tx:
                tx.update_entity(EntityKind.PERSON, "person-999999", {"name": "X"}, NOW)

    def test_create_edge(self):
        spec = get_relationship_spec(RelationshipKind.MENTIONS_LOCATION)
        with self.store.transaction() as tx:
            article = tx.create_entity(EntityKind.ARTICLE, {"title": "T"}, NOW)
            location = tx.create_entity(EntityKind.LOCATION, {"name": "Paris"}, NOW)
            tx.create_edge(
                spec,
                EntityRef(EntityKind.ARTICLE, article),
                EntityRef(EntityKind.LOCATION, location),
                NOW,
                evidence="dropped: kind has no evidence",
            )

        edge = self.store.edges_of_type("MENTIONS_LOCATION")[0]
        assert (edge.source, edge.target) == (article, location)
        assert edge.properties == {"createdAt": NOW}


class TestStatsAndExport:
    def setup_method(self):
        self.store = InMemoryGraphStore()
        spec = get_relationship_spec(RelationshipKind.MENTIONS_PERSON)
        with self.store.transaction() as tx:
            self.article = tx.create_entity(EntityKind.ARTICLE, {"title": "T"}, NOW)
            self.person = tx.create_entity(EntityKind.PERSON, {"name": "Ada"}, NOW)
            tx.create_edge(
                spec,
                EntityRef(EntityKind.ARTICLE, self.article),
                EntityRef(EntityKind.PERSON, self.person),
                NOW,
                evidence="quote",
            )

    def test_get_stats(self):
        stats = self.store.get_stats()
        assert stats["total_nodes"] == 2
        assert stats["total_edges"] == 1
        assert stats["node_counts"] == {"Article": 1, "Person": 1}
        assert stats["edge_counts"] == {"MENTIONS_PERSON": 1}

    def test_to_dict_is_detached(self):
        snapshot = self.store.to_dict()
        snapshot["nodes"][0]["properties"]["title"] = "changed"
        snapshot["edges"][0]["properties"]["evidence"] = "changed"

        assert self.store.get_node(self.article).properties["title"] == "T"
        assert self.store.edges[0].properties["evidence"] == "quote"

    def test_save_and_load_json(self, tmp_path):
        path = tmp_path / "graph" / "kg.json"
        self.store.save_json(str(path))

        loaded = InMemoryGraphStore.load_json(str(path))
        assert loaded.get_stats() == self.store.get_stats()
        assert loaded.get_node(self.person).properties["createdAt"] == NOW.isoformat()

        # Dedup index and handle numbering survive the round trip
        with loaded.transaction() as tx:
            assert tx.find_by_key(EntityKind.PERSON, "Ada") == [self.person]
            new_handle = tx.create_entity(EntityKind.PERSON, {"name": "Bob"}, NOW)
        assert new_handle not in (self.article, self.person)

    def test_clear(self):
        self.store.clear()
        assert self.store.get_stats()["total_nodes"] == 0
        assert self.store.edges == []


class TestConcurrentReaders:
    def test_reader_waits_for_open_transaction(self):
        store = InMemoryGraphStore()
        entered = threading.Event()
        release = threading.Event()
        seen = []

        def writer():
            with store.transaction() as tx:
                tx.create_entity(EntityKind.PERSON, {"name": "Ada"}, NOW)
                entered.set()
                release.wait(5)

        def reader():
            seen.append(store.get_stats()["total_nodes"])

        writer_thread = threading.Thread(target=writer)
        writer_thread.start()
        assert entered.wait(5)

        reader_thread = threading.Thread(target=reader)
        reader_thread.start()
        reader_thread.join(0.2)
        assert reader_thread.is_alive()

        release.set()
        writer_thread.join(5)
        reader_thread.join(5)
        assert seen == [1]
