"""name search over a framework tree."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from .models import FrameworkNode
from .paths import SEPARATOR, iter_paths


@dataclass
class SearchResult:
    matches: list[str] = field(default_factory=list)
    expand: set[str] = field(default_factory=set)  # paths to open so matches show

    @property
    def count(self) -> int:
        return len(self.matches)


def find_matches(tree: FrameworkNode, query: str) -> list[str]:
    """paths of nodes whose name contains query, case-insensitive, in tree order.

    the whole tree is searched regardless of what is expanded. an empty
    query matches nothing.
    """
    if not query:
        return []
    needle = query.lower()
    return [path for path, node in iter_paths(tree) if needle in node.name.lower()]


def ancestors_of(paths: Iterable[str]) -> set[str]:
    """every prefix of every path, the paths themselves and the root included."""
    ancestors: set[str] = set()
    for path in paths:
        current = ""
        for part in path.split(SEPARATOR):
            current = f"{current}{SEPARATOR}{part}" if current else part
            ancestors.add(current)
    return ancestors


def all_paths(tree: FrameworkNode) -> list[str]:
    """every path in the tree, for expand-all."""
    return [path for path, _ in iter_paths(tree)]


def search(tree: FrameworkNode, query: str) -> SearchResult:
    matches = find_matches(tree, query)
    return SearchResult(matches=matches, expand=ancestors_of(matches))
