from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple


@dataclass(frozen=True)
class CharTokenizer:
    """A minimal character-level tokenizer.

    Holds the vocabulary of a bigram model: the distinct characters of the
    training text, each mapped to a stable integer id, plus encode/decode
    between text and ids.
    """

    char_to_id: Dict[str, int]
    id_to_char: Dict[int, str]

    @classmethod
    def from_text(cls, text: str, alphabet: Optional[Iterable[str]] = None) -> "CharTokenizer":
        """Create a tokenizer from text by extracting unique characters.

        Ids follow the order of first occurrence in the text. When an alphabet
        is given its characters take the first ids, in the alphabet's own order,
        and characters of the text outside it are appended after them.
        """
        ordered: List[str] = []
        if alphabet is not None:
            ordered.extend(alphabet)
        ordered.extend(text)
        # dict.fromkeys keeps insertion order and drops repeats
        unique_chars = list(dict.fromkeys(ordered))
        for character in unique_chars:
            if len(character) != 1:
                raise ValueError(f"Alphabet entries must be single characters: {character!r}")
        return cls.from_chars(unique_chars)

    @classmethod
    def from_chars(cls, chars: Iterable[str]) -> "CharTokenizer":
        """Create a tokenizer from an already ordered list of distinct characters.

        Raises ValueError on duplicates.
        """
        id_to_char: Dict[int, str] = {index: character for index, character in enumerate(chars)}
        char_to_id: Dict[str, int] = {character: index for index, character in id_to_char.items()}
        if len(char_to_id) != len(id_to_char):
            raise ValueError("Vocabulary contains duplicate characters")
        return cls(char_to_id=char_to_id, id_to_char=id_to_char)

    @property
    def vocab_size(self) -> int:
        return len(self.id_to_char)

    @property
    def chars(self) -> Tuple[str, ...]:
        return tuple(self.id_to_char[index] for index in range(self.vocab_size))

    def __contains__(self, character: object) -> bool:
        return character in self.char_to_id

    def encode(self, text: str) -> List[int]:
        """Map each character of ``text`` to its id.

        Raises ValueError naming the first unknown character and its offset.
        """
        try:
            return [self.char_to_id[character] for character in text]
        except KeyError as exc:
            offset = next(i for i, c in enumerate(text) if c not in self.char_to_id)
            raise ValueError(f"Character {exc.args[0]!r} at offset {offset} not in vocabulary") from None

    def decode(self, token_ids: Iterable[int]) -> str:
        """Inverse of ``encode``; accepts python or numpy integers."""
        try:
            return "".join(self.id_to_char[int(token_id)] for token_id in token_ids)
        except KeyError as exc:
            raise ValueError(f"Token id {exc.args[0]} not in vocabulary") from None
