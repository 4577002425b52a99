"""Unit tests for split_text and the chunking parameters."""

import math
import unittest

from services.document_ingestion.IngestionService import make_document_id, split_text
from shared.clients.rag.models.VectorEntry import VectorEntry, make_vector_id
from shared.exceptions import ConfigurationError


def _reconstruct(chunks: list[str], overlap: int) -> str:
    if not chunks:
        return ""
    return chunks[0] + "".join(chunk[overlap:] for chunk in chunks[1:])


class TestSplitText(unittest.TestCase):
    def test_empty_text_yields_no_chunks(self) -> None:
        self.assertEqual(split_text(""), [])

    def test_short_text_is_a_single_chunk(self) -> None:
        self.assertEqual(split_text("hello", chunk_size=10, overlap=2), ["hello"])

    def test_offsets_follow_the_step(self) -> None:
        chunks = split_text("abcdefghij", chunk_size=4, overlap=1)
        self.assertEqual(chunks, ["abcd", "defg", "ghij", "j"])

    def test_count_and_reconstruction(self) -> None:
        text = "".join(chr(ord("a") + i % 26) for i in range(2345))
        for chunk_size, overlap in [(1000, 200), (100, 0), (7, 3), (50, 49)]:
            with self.subTest(chunk_size=chunk_size, overlap=overlap):
                chunks = split_text(text, chunk_size=chunk_size, overlap=overlap)
                self.assertEqual(len(chunks), math.ceil(len(text) / (chunk_size - overlap)))
                self.assertTrue(all(len(chunk) <= chunk_size for chunk in chunks))
                self.assertEqual(_reconstruct(chunks, overlap), text)

    def test_default_parameters(self) -> None:
        chunks = split_text("x" * 2500)
        self.assertEqual([len(c) for c in chunks], [1000, 1000, 900, 100])

    def test_invalid_parameters_raise(self) -> None:
        for chunk_size, overlap in [(100, 100), (100, 150), (0, 0), (-5, 0), (10, -1)]:
            with self.subTest(chunk_size=chunk_size, overlap=overlap):
                with self.assertRaises(ConfigurationError):
                    split_text("some text", chunk_size=chunk_size, overlap=overlap)


class TestIdentifiers(unittest.TestCase):
    def test_vector_id_is_deterministic(self) -> None:
        self.assertEqual(make_vector_id("doc_a", 0), make_vector_id("doc_a", 0))
        self.assertNotEqual(make_vector_id("doc_a", 0), make_vector_id("doc_a", 1))
        self.assertNotEqual(make_vector_id("doc_a", 0), make_vector_id("doc_b", 0))

    def test_reingesting_a_chunk_reuses_the_vector_id(self) -> None:
        first = VectorEntry.for_chunk("doc_a", 3, "text", [0.1, 0.2])
        second = VectorEntry.for_chunk("doc_a", 3, "text", [0.3, 0.4])
        self.assertEqual(first.vector_id, second.vector_id)

    def test_document_id_layout(self) -> None:
        self.assertEqual(make_document_id("chat1", 1700000000000, 2), "doc_chat1_1700000000000_2")


if __name__ == "__main__":
    unittest.main()
