"""Trie for detecting whether a text contains any of a set of words."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class TrieNode:
    children: dict[str, "TrieNode"] = field(default_factory=dict)
    is_end: bool = False


@dataclass
class Trie:
    root: TrieNode = field(default_factory=TrieNode)

    def insert(self, word: str) -> None:
        """Add a word; a word ending here makes any longer word under it redundant."""
        node = self.root
        for ch in word:
            node = node.children.setdefault(ch, TrieNode())
        node.is_end = True
        node.children = {}

    def search(self, text: str) -> bool:
        """Return True if any inserted word occurs anywhere in text."""
        for start in range(len(text)):
            node = self.root
            for ch in text[start:]:
                node = node.children.get(ch)
                if node is None:
                    break
                if node.is_end:
                    return True
        return False