from __future__ import annotations

import logging
import math
from typing import List, Optional, Union

import numpy as np

from bigram_model import BigramModel
from errors import EmptyModelError, InvalidLengthError, InvalidTemperatureError

logger = logging.getLogger(__name__)

# Temperatures below this are clamped; at this scale sampling is effectively argmax.
MIN_TEMPERATURE = 1e-6

RngLike = Union[np.random.Generator, int, None]


def validate_temperature(temperature: float) -> float:
    try:
        value = float(temperature)
    except (TypeError, ValueError) as exc:
        raise InvalidTemperatureError(f"temperature must be a number, got {temperature!r}") from exc
    if not math.isfinite(value) or value <= 0.0:
        raise InvalidTemperatureError(f"temperature must be a positive finite number, got {temperature!r}")
    return value


def apply_temperature(probs: np.ndarray, temperature: float) -> np.ndarray:
    """Reshape distribution(s) to P ** (1 / T), renormalized along the last axis.

    Works on a single row or a whole table. Computed in log space so very small
    temperatures collapse onto the most likely entries instead of underflowing.
    """
    temperature = validate_temperature(temperature)
    probs = np.asarray(probs, dtype=np.float64)
    if temperature < MIN_TEMPERATURE:
        logger.debug("temperature %g clamped to %g", temperature, MIN_TEMPERATURE)
        temperature = MIN_TEMPERATURE
    if temperature == 1.0:
        return probs / probs.sum(axis=-1, keepdims=True)

    with np.errstate(divide="ignore"):
        scaled = np.log(probs) / temperature
    scaled = scaled - scaled.max(axis=-1, keepdims=True)
    weights = np.exp(scaled)
    return weights / weights.sum(axis=-1, keepdims=True)


def sample_next(probs: np.ndarray, rng: np.random.Generator) -> int:
    """Draw one index from a categorical distribution by inverting its CDF."""
    cdf = np.cumsum(probs)
    r = rng.random() * cdf[-1]
    index = int(np.searchsorted(cdf, r, side="right"))
    if index >= len(probs):
        # r rounded up onto the total; take the last entry with mass
        index = int(np.flatnonzero(probs)[-1])
    return index


def generate(
    model: BigramModel,
    length: int,
    temperature: float = 1.0,
    seed: Optional[str] = None,
    rng: RngLike = None,
) -> str:
    """Sample ``length`` characters from ``model``.

    The output starts with ``seed`` and continues with ``length - 1`` sampled
    characters. A missing or out-of-vocabulary seed is replaced by a uniformly
    drawn vocabulary character. ``rng`` is a numpy Generator or an integer seed
    for reproducible output.
    """
    temperature = validate_temperature(temperature)
    if isinstance(length, bool) or not isinstance(length, (int, np.integer)):
        raise InvalidLengthError(f"length must be an integer, got {length!r}")
    if length < 0:
        raise InvalidLengthError(f"length must be >= 0, got {length}")
    if model.vocab_size == 0:
        raise EmptyModelError("Cannot generate from a model with an empty vocabulary")
    if length == 0:
        return ""

    rng = np.random.default_rng(rng)
    table = apply_temperature(model.table, temperature)
    char_to_id = model.tokenizer.char_to_id

    if seed is not None and seed in char_to_id:
        current = char_to_id[seed]
    else:
        if seed is not None:
            logger.debug("seed %r not in vocabulary; drawing a random start", seed)
        current = int(rng.integers(model.vocab_size))

    out_ids: List[int] = [current]
    for _ in range(length - 1):
        current = sample_next(table[current], rng)
        out_ids.append(current)
    return model.tokenizer.decode(out_ids)
