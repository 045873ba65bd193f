import pytest

from char_tokenizer import CharTokenizer


def test_round_trip_small():
    text = "hello, world!\n"
    tokenizer = CharTokenizer.from_text(text)
    assert tokenizer.decode(tokenizer.encode(text)) == text


def test_ids_follow_first_occurrence():
    tokenizer = CharTokenizer.from_text("banana")
    assert tokenizer.chars == ("b", "a", "n")
    assert tokenizer.char_to_id == {"b": 0, "a": 1, "n": 2}
    assert tokenizer.vocab_size == 3


def test_same_text_same_vocab():
    text = "the quick brown fox"
    assert CharTokenizer.from_text(text) == CharTokenizer.from_text(text)


def test_alphabet_comes_first():
    tokenizer = CharTokenizer.from_text("cab", alphabet="xyzx")
    assert tokenizer.chars == ("x", "y", "z", "c", "a", "b")


def test_alphabet_rejects_multichar_entries():
    with pytest.raises(ValueError):
        CharTokenizer.from_text("ab", alphabet=["ab"])


def test_from_chars_rejects_duplicates():
    with pytest.raises(ValueError):
        CharTokenizer.from_chars(["a", "b", "a"])


def test_contains():
    tokenizer = CharTokenizer.from_text("abc")
    assert "a" in tokenizer
    assert "d" not in tokenizer


def test_raises_on_oov():
    tokenizer = CharTokenizer.from_text("abc")
    with pytest.raises(ValueError):
        tokenizer.encode("abd")
    with pytest.raises(ValueError):
        tokenizer.decode([0, 7])
