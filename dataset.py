from __future__ import annotations

from typing import Sequence, Tuple, TypeVar

S = TypeVar("S", bound=Sequence)


def split_sequence(
    items: S,
    train_ratio: float = 0.90,
    val_ratio: float = 0.05,
    test_ratio: float = 0.05,
) -> Tuple[S, S, S]:
    """Split a sequence into contiguous train/val/test slices.

    Ratios must sum to 1.0. No shuffling to preserve language continuity.
    """
    if min(train_ratio, val_ratio, test_ratio) < 0:
        raise ValueError("split ratios must be non-negative")
    if abs((train_ratio + val_ratio + test_ratio) - 1.0) >= 1e-6:
        raise ValueError("split ratios must sum to 1.0")
    total = len(items)
    train_end = int(total * train_ratio)
    val_end = train_end + int(total * val_ratio)
    return items[:train_end], items[train_end:val_end], items[val_end:]


def split_text(
    text: str,
    train_ratio: float = 0.90,
    val_ratio: float = 0.05,
    test_ratio: float = 0.05,
) -> Tuple[str, str, str]:
    """Split a corpus for held-out perplexity; the test slice gets the remainder."""
    return split_sequence(text, train_ratio, val_ratio, test_ratio)
