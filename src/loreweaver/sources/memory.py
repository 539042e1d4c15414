"""
In-memory knowledge sources.

Used by tests and by the demo world loaded from YAML. Search is keyword
scoring over text fields, which is what the vector store falls back to
when no vectorizer is configured.
"""

import re
from typing import Any

from .base import DocumentQuery, GraphQuery, SearchFilter


WORD = re.compile(r"\w+")


class MemoryGraphStore:
    """Nodes grouped by label."""

    def __init__(self, nodes: dict[str, list[dict]] | None = None):
        self.nodes: dict[str, list[dict]] = {k: list(v) for k, v in (nodes or {}).items()}

    def add(self, label: str, properties: dict) -> None:
        self.nodes.setdefault(label, []).append(dict(properties))

    async def read(self, query: GraphQuery) -> list[dict]:
        results = []
        for node in self.nodes.get(query.label, []):
            if query.ids is not None and node.get("id") not in query.ids:
                continue
            if query.name_contains is not None:
                name = str(node.get("name") or "").lower()
                if query.name_contains.lower() not in name:
                    continue
            results.append(dict(node))
            if query.limit is not None and len(results) >= query.limit:
                break
        return results


class MemoryDocumentStore:
    """Documents grouped by collection name."""

    def __init__(self, collections: dict[str, list[dict]] | None = None):
        self.collections: dict[str, list[dict]] = {
            k: list(v) for k, v in (collections or {}).items()
        }

    def insert(self, collection: str, document: dict) -> None:
        self.collections.setdefault(collection, []).append(dict(document))

    async def find(self, query: DocumentQuery) -> list[dict]:
        docs = [
            dict(doc) for doc in self.collections.get(query.collection, [])
            if all(doc.get(k) == v for k, v in query.where.items())
        ]
        if query.sort_by:
            docs.sort(key=lambda d: str(d.get(query.sort_by) or ""), reverse=query.descending)
        if query.limit is not None:
            docs = docs[:query.limit]
        return docs


def _text_of(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return " ".join(str(v) for v in value)
    return "" if value is None else str(value)


class MemoryVectorStore:
    """Objects grouped by class name, searched by keyword overlap."""

    def __init__(self, collections: dict[str, list[dict]] | None = None):
        self.collections: dict[str, list[dict]] = {
            k: list(v) for k, v in (collections or {}).items()
        }

    def add(self, collection: str, properties: dict) -> None:
        self.collections.setdefault(collection, []).append(dict(properties))

    async def semantic_search(
        self,
        collection: str,
        query: str,
        fields: list[str],
        limit: int,
        filter: SearchFilter | None = None,
    ) -> list[dict]:
        terms = {t.lower() for t in WORD.findall(query)}
        scored: list[tuple[int, int, dict]] = []

        for position, obj in enumerate(self.collections.get(collection, [])):
            if filter is not None and obj.get(filter.path) != filter.value:
                continue
            text = " ".join(_text_of(v) for v in obj.values()).lower()
            words = set(WORD.findall(text))
            score = len(terms & words)
            if score:
                scored.append((-score, position, obj))

        scored.sort(key=lambda s: (s[0], s[1]))
        results = []
        for _, _, obj in scored[:limit]:
            projected = {k: obj[k] for k in fields if k in obj} if fields else dict(obj)
            if "id" in obj:
                projected.setdefault("id", obj["id"])
            results.append(projected)
        return results
