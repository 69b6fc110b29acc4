"""
Projects and labels known to the user, held in memory for autocomplete.

Both lists are replaced wholesale by whoever fetches them; there is no
incremental update. Searches never rank: an empty query returns the head of
the list as stored.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Mapping, Union

MAX_RESULTS = 8


@dataclass(frozen=True)
class CacheItem:
    id: int
    title: str


ItemLike = Union[CacheItem, Mapping]


def _as_item(item: ItemLike) -> CacheItem:
    if isinstance(item, CacheItem):
        return item
    return CacheItem(id=item["id"], title=str(item["title"]))


class ReferenceCache:
    def __init__(self, max_results: int = MAX_RESULTS):
        self.max_results = max_results
        self._projects: list[CacheItem] = []
        self._labels: list[CacheItem] = []

    @property
    def projects(self) -> list[CacheItem]:
        return list(self._projects)

    @property
    def labels(self) -> list[CacheItem]:
        return list(self._labels)

    def set_projects(self, items: Iterable[ItemLike]) -> None:
        self._projects = [_as_item(i) for i in items]

    def set_labels(self, items: Iterable[ItemLike]) -> None:
        self._labels = [_as_item(i) for i in items]

    def _search(self, items: list[CacheItem], query: str) -> list[CacheItem]:
        if not query:
            return items[: self.max_results]
        q = query.lower()
        return [i for i in items if q in i.title.lower()][: self.max_results]

    def search_projects(self, query: str) -> list[CacheItem]:
        return self._search(self._projects, query)

    def search_labels(self, query: str) -> list[CacheItem]:
        return self._search(self._labels, query)

    def load_json(self, path: Path | str) -> None:
        """
        Populate both lists from a file shaped like
        ``{"projects": [{"id": 1, "title": "Inbox"}], "labels": [...]}``.
        Raises ``ValueError`` (json.JSONDecodeError) or ``KeyError`` on a
        malformed file.
        """
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{path}: expected an object with projects and labels")
        self.set_projects(data.get("projects", []))
        self.set_labels(data.get("labels", []))
