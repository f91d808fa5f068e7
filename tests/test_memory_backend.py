"""Unit tests for the in-process fallback backend."""

from __future__ import annotations

import unittest
from concurrent.futures import ThreadPoolExecutor

from minime.core.vector_store.base import BackendKind, DuplicateRecordError, VectorRecord
from minime.core.vector_store.memory_impl import InMemoryBackend
from minime.core.vector_store.similarity import SENTINEL_SCORE


class InMemoryBackendTests(unittest.TestCase):
    def setUp(self) -> None:
        self.backend = InMemoryBackend()

    def test_kind_is_fallback(self) -> None:
        self.assertEqual(self.backend.kind, BackendKind.FALLBACK)

    def test_add_assigns_sequential_ids(self) -> None:
        first = self.backend.add(VectorRecord(text="alpha"))
        second = self.backend.add(VectorRecord(text="beta"))
        self.assertEqual((first.id, second.id), ("1", "2"))
        self.assertEqual([r.text for r in self.backend.list()], ["alpha", "beta"])

    def test_caller_id_is_kept_and_skipped_by_generator(self) -> None:
        self.backend.add(VectorRecord(text="custom", id="1"))
        generated = self.backend.add(VectorRecord(text="auto"))
        self.assertEqual(generated.id, "2")
        self.assertIn("1", self.backend)

    def test_duplicate_caller_id_is_rejected(self) -> None:
        self.backend.add(VectorRecord(text="one", id="doc"))
        with self.assertRaises(DuplicateRecordError):
            self.backend.add(VectorRecord(text="two", id="doc"))
        self.assertEqual(len(self.backend), 1)

    def test_query_without_embedding_is_empty(self) -> None:
        self.backend.add(VectorRecord(text="x", embedding=[1.0, 0.0]))
        self.assertEqual(self.backend.query(None, 5), [])

    def test_query_ranks_by_descending_score_and_truncates(self) -> None:
        self.backend.add(VectorRecord(text="far", embedding=[0.0, 1.0]))
        self.backend.add(VectorRecord(text="near", embedding=[1.0, 0.1]))
        self.backend.add(VectorRecord(text="mid", embedding=[1.0, 1.0]))
        results = self.backend.query([1.0, 0.0], 2)
        self.assertEqual([r.text for r in results], ["near", "mid"])
        self.assertGreater(results[0].score, results[1].score)

    def test_ties_keep_insertion_order(self) -> None:
        for name in ["first", "second", "third", "fourth"]:
            self.backend.add(VectorRecord(text=name, embedding=[0.5, 0.5]))
        results = self.backend.query([1.0, 1.0], 3)
        self.assertEqual([r.text for r in results], ["first", "second", "third"])

    def test_records_without_embedding_rank_last(self) -> None:
        self.backend.add(VectorRecord(text="bare"))
        self.backend.add(VectorRecord(text="embedded", embedding=[0.0, 1.0]))
        results = self.backend.query([1.0, 0.0], 5)
        self.assertEqual([r.text for r in results], ["embedded", "bare"])
        self.assertEqual(results[-1].score, SENTINEL_SCORE)

    def test_clear_empties_store_and_restarts_ids(self) -> None:
        self.backend.add(VectorRecord(text="a"))
        self.backend.add(VectorRecord(text="b"))
        self.assertTrue(self.backend.clear())
        self.assertEqual(self.backend.list(), [])
        self.assertEqual(self.backend.add(VectorRecord(text="c")).id, "1")

    def test_list_returns_a_copy(self) -> None:
        self.backend.add(VectorRecord(text="a"))
        snapshot = self.backend.list()
        snapshot.clear()
        self.assertEqual(len(self.backend), 1)

    def test_concurrent_threads_never_share_ids(self) -> None:
        with ThreadPoolExecutor(max_workers=8) as pool:
            stored = list(pool.map(lambda i: self.backend.add(VectorRecord(text=f"doc {i}")), range(200)))
        ids = [record.id for record in stored]
        self.assertEqual(len(ids), len(set(ids)))
        self.assertEqual(len(self.backend), 200)


if __name__ == "__main__":
    unittest.main()
