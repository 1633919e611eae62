from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Tuple

from chunky.errors import ConfigurationError
from chunky.models.section import Section

DEFAULT_ENCODING = "o200k_base"


@dataclass(frozen=True, slots=True)
class MeasuredSection:
    """Read-only mirror of a section annotated with token counts."""

    section: Section
    own_tokens: int
    subtree_tokens: int
    children: Tuple["MeasuredSection", ...] = field(default_factory=tuple)

    def render(self) -> str:
        """Own content followed by every descendant's, in document order."""

        return self.section.content + "".join(child.render() for child in self.children)


class Tokenizer(ABC):
    """Counts tokens in text and measures whole section trees."""

    @abstractmethod
    def count(self, text: str) -> int:
        """Return the number of tokens in ``text``."""

    def measure(self, root: Section) -> MeasuredSection:
        """Count every node's own content and roll the totals up the tree.

        Counter errors propagate unchanged; no partial tree is returned.
        """

        own_tokens = self.count(root.content)
        children = tuple(self.measure(child) for child in root.children)
        subtree_tokens = own_tokens + sum(child.subtree_tokens for child in children)
        return MeasuredSection(
            section=root,
            own_tokens=own_tokens,
            subtree_tokens=subtree_tokens,
            children=children,
        )


class CallableTokenizer(Tokenizer):
    """Adapts a plain ``text -> int`` function."""

    def __init__(self, counter: Callable[[str], int]) -> None:
        self._counter = counter

    def count(self, text: str) -> int:
        return self._counter(text)


class WordCountTokenizer(Tokenizer):
    """Approximates tokens as whitespace-delimited words divided by ``words_per_token``."""

    def __init__(self, words_per_token: float = 1.0) -> None:
        self.words_per_token = words_per_token if words_per_token > 0 else 1.0

    def count(self, text: str) -> int:
        return int(len(text.split()) / self.words_per_token)


class CharCountTokenizer(Tokenizer):
    """Approximates tokens as Unicode code points divided by ``chars_per_token``."""

    def __init__(self, chars_per_token: float = 4.0) -> None:
        self.chars_per_token = chars_per_token if chars_per_token > 0 else 4.0

    def count(self, text: str) -> int:
        return int(len(text) / self.chars_per_token)


class TiktokenTokenizer(Tokenizer):
    """Exact counts from a tiktoken BPE encoding (``o200k_base`` by default)."""

    def __init__(self, encoding_name: str = DEFAULT_ENCODING) -> None:
        import tiktoken

        self.encoding_name = encoding_name or DEFAULT_ENCODING
        try:
            self._encoding = tiktoken.get_encoding(self.encoding_name)
        except (KeyError, ValueError) as exc:
            raise ConfigurationError(
                f"tiktoken: failed to load encoding {self.encoding_name!r}: {exc}"
            ) from exc

    def count(self, text: str) -> int:
        return len(self._encoding.encode(text, disallowed_special=()))


def create_tokenizer(name: str) -> Tokenizer:
    """Build a tokenizer from its CLI name: ``char``, ``word`` or a tiktoken encoding."""

    key = (name or DEFAULT_ENCODING).strip().lower()
    if key == "char":
        return CharCountTokenizer()
    if key == "word":
        return WordCountTokenizer()
    return TiktokenTokenizer(key)


__all__ = [
    "CallableTokenizer",
    "CharCountTokenizer",
    "DEFAULT_ENCODING",
    "MeasuredSection",
    "TiktokenTokenizer",
    "Tokenizer",
    "WordCountTokenizer",
    "create_tokenizer",
]
