from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from functools import cached_property
from typing import Dict, Iterable, Optional, Sequence, Tuple

import numpy as np

from char_tokenizer import CharTokenizer
from errors import (
    EmptyCorpusError,
    EmptyModelError,
    InvalidAlphaError,
    NoScorableTransitionsError,
)

logger = logging.getLogger(__name__)

DEFAULT_ALPHA = 0.75
ROW_SUM_TOLERANCE = 1e-9


@dataclass(frozen=True, eq=False)
class BigramModel:
    """Trained character bigram model.

    ``table[i, j]`` is P(next = vocab[j] | current = vocab[i]). The table is
    stored as a read-only float64 array so a published model can be shared by
    concurrent readers; retraining always builds a new instance.
    """

    vocab: Tuple[str, ...]
    table: np.ndarray
    alpha: float
    total_transitions: int = 0
    corpus: Optional[str] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        vocab = tuple(self.vocab)
        n = len(vocab)
        table = np.array(self.table, dtype=np.float64)
        if n == 0 and table.size == 0:
            table = table.reshape(0, 0)
        if table.shape != (n, n):
            raise ValueError(f"table shape {table.shape} does not match vocabulary size {n}")
        table.setflags(write=False)
        object.__setattr__(self, "vocab", vocab)
        object.__setattr__(self, "table", table)
        object.__setattr__(self, "alpha", float(self.alpha))
        object.__setattr__(self, "total_transitions", int(self.total_transitions))
        # build the lookup now so concurrent readers never fill the cache
        self.tokenizer

    @property
    def vocab_size(self) -> int:
        return len(self.vocab)

    @cached_property
    def tokenizer(self) -> CharTokenizer:
        return CharTokenizer.from_chars(self.vocab)

    def probability(self, current: str, following: str) -> float:
        """P(following | current). Raises KeyError for characters outside the vocabulary."""
        ids = self.tokenizer.char_to_id
        return float(self.table[ids[current], ids[following]])

    def distribution(self, current: str) -> Dict[str, float]:
        """Next-character distribution after ``current`` as a {char: prob} dict."""
        row = self.table[self.tokenizer.char_to_id[current]]
        return {character: float(p) for character, p in zip(self.vocab, row)}


def validate_alpha(alpha: float) -> float:
    try:
        value = float(alpha)
    except (TypeError, ValueError) as exc:
        raise InvalidAlphaError(f"alpha must be a number, got {alpha!r}") from exc
    if not math.isfinite(value) or value <= 0.0:
        raise InvalidAlphaError(f"alpha must be a positive finite number, got {alpha!r}")
    return value


def count_transitions(text: str, tokenizer: CharTokenizer) -> np.ndarray:
    """Count adjacent character pairs of ``text`` into a V x V int64 matrix.

    Text shorter than two characters yields an all-zero matrix.
    """
    V = tokenizer.vocab_size
    counts = np.zeros((V, V), dtype=np.int64)
    if len(text) < 2:
        return counts
    ids = np.array(tokenizer.encode(text), dtype=np.int64)
    # unbuffered add so repeated (i, j) pairs accumulate
    np.add.at(counts, (ids[:-1], ids[1:]), 1)
    return counts


def smooth_counts(counts: np.ndarray, alpha: float) -> np.ndarray:
    """Additive smoothing: P[i, j] = (c[i, j] + alpha) / (sum_k c[i, k] + alpha * V).

    Rows without observed transitions come out uniform.
    """
    alpha = validate_alpha(alpha)
    counts = np.asarray(counts, dtype=np.float64)
    V = counts.shape[0]
    numerator = counts + alpha
    denominator = counts.sum(axis=1, keepdims=True) + alpha * V
    return numerator / denominator


def rows_sum_to_one(table: np.ndarray, tolerance: float = ROW_SUM_TOLERANCE) -> bool:
    if table.size == 0:
        return True
    return bool(np.all(np.abs(table.sum(axis=1) - 1.0) <= tolerance))


def train(
    corpus_text: str,
    alpha: float = DEFAULT_ALPHA,
    alphabet: Optional[Iterable[str]] = None,
) -> BigramModel:
    """Fit a smoothed bigram model on ``corpus_text``.

    Raises EmptyCorpusError when the text has fewer than two characters and
    InvalidAlphaError for a non-positive alpha. Nothing is built before both
    checks pass.
    """
    alpha = validate_alpha(alpha)
    if len(corpus_text) < 2 or not set(corpus_text):
        raise EmptyCorpusError(
            f"Training text needs at least 2 characters, got {len(corpus_text)}"
        )

    tokenizer = CharTokenizer.from_text(corpus_text, alphabet=alphabet)
    counts = count_transitions(corpus_text, tokenizer)
    table = smooth_counts(counts, alpha)
    total = int(counts.sum())
    logger.debug("trained bigram model: vocab=%d transitions=%d alpha=%g", tokenizer.vocab_size, total, alpha)
    return BigramModel(
        vocab=tokenizer.chars,
        table=table,
        alpha=alpha,
        total_transitions=total,
        corpus=corpus_text,
    )


@dataclass(frozen=True)
class PerplexityReport:
    perplexity: float
    scored: int
    skipped: int
    nll: float


def score_text(model: BigramModel, text: Optional[str] = None) -> PerplexityReport:
    """Score adjacent pairs of ``text`` under ``model``.

    Pairs with a character outside the vocabulary are skipped and counted in
    ``skipped``; they add nothing to the log-likelihood. ``text`` defaults to
    the model's training corpus when the model still carries one.
    """
    if model.vocab_size == 0:
        raise EmptyModelError("Cannot score text with an empty vocabulary")
    if text is None:
        text = model.corpus
        if text is None:
            raise NoScorableTransitionsError(
                "Model carries no training text; pass the text to evaluate"
            )

    char_to_id = model.tokenizer.char_to_id
    ids = np.fromiter((char_to_id.get(c, -1) for c in text), dtype=np.int64, count=len(text))
    prev_ids, next_ids = ids[:-1], ids[1:]
    mask = (prev_ids >= 0) & (next_ids >= 0)
    scored = int(mask.sum())
    skipped = max(len(text) - 1, 0) - scored
    if scored == 0:
        raise NoScorableTransitionsError(
            f"No in-vocabulary transitions to score ({skipped} skipped)"
        )

    nll = float(-np.log(model.table[prev_ids[mask], next_ids[mask]]).sum())
    perplexity = math.exp(nll / scored)
    if skipped:
        logger.debug("perplexity: skipped %d out-of-vocabulary transitions", skipped)
    return PerplexityReport(perplexity=perplexity, scored=scored, skipped=skipped, nll=nll)


def evaluate_perplexity(model: BigramModel, text: Optional[str] = None) -> float:
    return score_text(model, text).perplexity


@dataclass(frozen=True)
class TrainingResult:
    model: BigramModel
    perplexity: float
    total_transitions: int


def train_with_report(
    corpus_text: str,
    alpha: float = DEFAULT_ALPHA,
    alphabet: Optional[Sequence[str]] = None,
) -> TrainingResult:
    """Train and score the model on its own corpus in one call."""
    model = train(corpus_text, alpha=alpha, alphabet=alphabet)
    return TrainingResult(
        model=model,
        perplexity=evaluate_perplexity(model),
        total_transitions=model.total_transitions,
    )
