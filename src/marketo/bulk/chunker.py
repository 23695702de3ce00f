"""Split an ordered collection into fixed-size batches."""

from typing import Sequence, TypeVar

from marketo.bulk.models import Batch

T = TypeVar("T")


def chunk(items: Sequence[T], size: int) -> list[Batch[T]]:
    """
    Partition items into consecutive batches of at most ``size`` items.

    Batch ``i`` holds ``items[i*size : min((i+1)*size, n)]``, so concatenating
    the batches in order reproduces the input exactly. Empty input yields no
    batches.

    Raises:
        ValueError: If size is not a positive integer
    """
    if size <= 0:
        raise ValueError(f"Batch size must be positive, got {size}")

    items = list(items)
    return [
        Batch(index=batch_index, start=start, items=tuple(items[start:start + size]))
        for batch_index, start in enumerate(range(0, len(items), size))
    ]


__all__ = ["chunk"]
