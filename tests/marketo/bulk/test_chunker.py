"""Tests for chunk()."""

import pytest

from marketo.bulk.chunker import chunk


class TestChunk:
    def test_splits_into_full_and_trailing_batches(self):
        items = list(range(650))

        batches = chunk(items, 300)

        assert [len(b) for b in batches] == [300, 300, 50]
        assert [b.index for b in batches] == [0, 1, 2]
        assert [b.start for b in batches] == [0, 300, 600]
        assert batches[2].end == 650

    def test_concatenation_reproduces_input(self):
        items = [f"lead{i}@example.com" for i in range(7)]

        batches = chunk(items, 3)

        flattened = [item for batch in batches for item in batch.items]
        assert flattened == items

    def test_exact_multiple_has_no_empty_batch(self):
        batches = chunk(list(range(600)), 300)
        assert [len(b) for b in batches] == [300, 300]

    def test_empty_input_yields_no_batches(self):
        assert chunk([], 300) == []

    def test_batch_size_larger_than_input(self):
        batches = chunk(["a", "b"], 300)
        assert len(batches) == 1
        assert batches[0].items == ("a", "b")

    @pytest.mark.parametrize("size", [0, -1])
    def test_non_positive_size_raises(self, size):
        with pytest.raises(ValueError, match="Batch size must be positive"):
            chunk([1, 2, 3], size)
