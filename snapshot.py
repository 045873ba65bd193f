from __future__ import annotations

import json
import logging
import math
import numbers
from typing import Any, Dict, List

import numpy as np

from bigram_model import BigramModel, rows_sum_to_one
from errors import MalformedSnapshotError

logger = logging.getLogger(__name__)

SNAPSHOT_FORMAT = "char-bigram-llm"
SNAPSHOT_VERSION = 1
SUPPORTED_VERSIONS = (1,)
# Looser than the training check: snapshots may come from other writers.
IMPORT_ROW_TOLERANCE = 1e-6


def export_snapshot(model: BigramModel) -> str:
    """Serialize ``model`` to a JSON document.

    Floats keep their shortest round-trip repr, so importing the text restores
    the table exactly.
    """
    payload: Dict[str, Any] = {
        "format": SNAPSHOT_FORMAT,
        "version": SNAPSHOT_VERSION,
        "vocabulary": list(model.vocab),
        "alpha": model.alpha,
        "table": model.table.tolist(),
        "metadata": {
            "vocab_size": model.vocab_size,
            "total_transitions": model.total_transitions,
        },
    }
    text = json.dumps(payload, ensure_ascii=False, indent=2)
    logger.debug("exported snapshot: vocab=%d bytes=%d", model.vocab_size, len(text))
    return text


def _is_number(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def _positive_float(value: Any, what: str) -> float:
    if not _is_number(value):
        raise MalformedSnapshotError(f"{what} must be a number, got {value!r}")
    try:
        result = float(value)
    except OverflowError as exc:
        raise MalformedSnapshotError(f"{what} is out of float range") from exc
    if not math.isfinite(result) or result <= 0:
        raise MalformedSnapshotError(f"{what} must be a positive finite number, got {value!r}")
    return result


def _require(payload: Dict[str, Any], key: str) -> Any:
    if key not in payload:
        raise MalformedSnapshotError(f"Snapshot is missing field {key!r}")
    return payload[key]


def _parse_vocabulary(raw: Any) -> List[str]:
    if not isinstance(raw, list):
        raise MalformedSnapshotError("'vocabulary' must be a list of characters")
    for entry in raw:
        if not isinstance(entry, str) or len(entry) != 1:
            raise MalformedSnapshotError(f"Vocabulary entry is not a single character: {entry!r}")
    if len(set(raw)) != len(raw):
        raise MalformedSnapshotError("Vocabulary contains duplicate characters")
    return raw


def _parse_table(raw: Any, n: int) -> np.ndarray:
    if not isinstance(raw, list) or len(raw) != n:
        raise MalformedSnapshotError(f"'table' must have {n} rows")
    rows: List[List[float]] = []
    for i, row in enumerate(raw):
        if not isinstance(row, list) or len(row) != n:
            raise MalformedSnapshotError(f"Table row {i} must have {n} entries")
        rows.append([_positive_float(value, f"Table row {i} entry") for value in row])
    table = np.array(rows, dtype=np.float64).reshape(n, n)
    if not rows_sum_to_one(table, IMPORT_ROW_TOLERANCE):
        raise MalformedSnapshotError("Table rows must each sum to 1")
    return table


def import_snapshot(text: str) -> BigramModel:
    """Rebuild a model from ``export_snapshot`` output.

    Raises MalformedSnapshotError on any structural or numeric inconsistency.
    """
    try:
        payload = json.loads(text)
    except (TypeError, ValueError) as exc:
        # ValueError covers JSONDecodeError and oversized integer literals
        raise MalformedSnapshotError(f"Snapshot is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise MalformedSnapshotError("Snapshot must be a JSON object")

    if _require(payload, "format") != SNAPSHOT_FORMAT:
        raise MalformedSnapshotError(f"Unknown snapshot format: {payload['format']!r}")
    version = _require(payload, "version")
    if isinstance(version, bool) or version not in SUPPORTED_VERSIONS:
        raise MalformedSnapshotError(f"Unsupported snapshot version: {version!r}")

    vocab = _parse_vocabulary(_require(payload, "vocabulary"))

    alpha = _positive_float(_require(payload, "alpha"), "'alpha'")

    table = _parse_table(_require(payload, "table"), len(vocab))

    metadata = payload.get("metadata", {})
    if not isinstance(metadata, dict):
        raise MalformedSnapshotError("'metadata' must be an object")
    total = metadata.get("total_transitions", 0)
    if isinstance(total, bool) or not isinstance(total, int) or total < 0:
        raise MalformedSnapshotError(f"'total_transitions' must be a non-negative integer, got {total!r}")

    return BigramModel(vocab=tuple(vocab), table=table, alpha=alpha, total_transitions=total)
