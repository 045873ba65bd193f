import json

import numpy as np
import pytest

from bigram_generate import generate
from bigram_model import evaluate_perplexity, train
from errors import MalformedSnapshotError
from snapshot import SNAPSHOT_FORMAT, SNAPSHOT_VERSION, export_snapshot, import_snapshot

CORPUS = "héllo wörld ✓ hello world"


@pytest.fixture(scope="module")
def model():
    return train(CORPUS, alpha=0.5)


def _payload(model):
    return json.loads(export_snapshot(model))


def test_snapshot_fields(model):
    payload = _payload(model)
    assert payload["format"] == SNAPSHOT_FORMAT
    assert payload["version"] == SNAPSHOT_VERSION == 1
    assert payload["vocabulary"] == list(model.vocab)
    assert payload["alpha"] == 0.5
    assert len(payload["table"]) == model.vocab_size
    assert payload["metadata"] == {"vocab_size": model.vocab_size, "total_transitions": len(CORPUS) - 1}


def test_round_trip(model):
    text = export_snapshot(model)
    restored = import_snapshot(text)
    assert restored.vocab == model.vocab
    assert restored.alpha == model.alpha
    assert restored.total_transitions == model.total_transitions
    assert np.allclose(restored.table, model.table, rtol=0, atol=1e-9)
    assert export_snapshot(restored) == text


def test_restored_model_is_usable(model):
    restored = import_snapshot(export_snapshot(model))
    assert restored.corpus is None
    assert evaluate_perplexity(restored, CORPUS) == pytest.approx(evaluate_perplexity(model))
    assert generate(restored, 40, rng=3) == generate(model, 40, rng=3)


def test_metadata_is_optional(model):
    payload = _payload(model)
    del payload["metadata"]
    assert import_snapshot(json.dumps(payload)).total_transitions == 0


def _drop(key):
    def edit(payload):
        del payload[key]
    return edit


def _set(key, value):
    def edit(payload):
        payload[key] = value
    return edit


def _scale_first_row(payload):
    payload["table"][0] = [p * 2 for p in payload["table"][0]]


def _zero_entry(payload):
    row = payload["table"][0]
    row[1] += row[0]
    row[0] = 0.0


def _short_row(payload):
    payload["table"][1] = payload["table"][1][:-1]


def _huge_entry(payload):
    payload["table"][0][0] = 10 ** 400


@pytest.mark.parametrize(
    "edit",
    [
        _drop("vocabulary"),
        _drop("table"),
        _drop("alpha"),
        _drop("version"),
        _set("format", "something-else"),
        _set("version", 2),
        _set("version", True),
        _set("alpha", 0),
        _set("alpha", "0.5"),
        _set("alpha", 10 ** 400),
        _set("vocabulary", "abc"),
        _set("metadata", []),
        _scale_first_row,
        _zero_entry,
        _short_row,
        _huge_entry,
    ],
)
def test_malformed_payloads(model, edit):
    payload = _payload(model)
    edit(payload)
    with pytest.raises(MalformedSnapshotError):
        import_snapshot(json.dumps(payload))


def test_vocabulary_entries_checked(model):
    payload = _payload(model)
    payload["vocabulary"][0] = payload["vocabulary"][1]
    with pytest.raises(MalformedSnapshotError):
        import_snapshot(json.dumps(payload))
    payload["vocabulary"][0] = "ab"
    with pytest.raises(MalformedSnapshotError):
        import_snapshot(json.dumps(payload))


def test_extra_row_rejected(model):
    payload = _payload(model)
    payload["table"].append(payload["table"][0])
    with pytest.raises(MalformedSnapshotError):
        import_snapshot(json.dumps(payload))


@pytest.mark.parametrize("text", ["", "not json", "[1, 2]", "null"])
def test_not_a_snapshot(text):
    with pytest.raises(MalformedSnapshotError):
        import_snapshot(text)


def test_integer_literal_too_long_for_python(model):
    text = export_snapshot(model)
    assert '"alpha": 0.5' in text
    with pytest.raises(MalformedSnapshotError):
        import_snapshot(text.replace('"alpha": 0.5', '"alpha": 1' + "0" * 5000))
