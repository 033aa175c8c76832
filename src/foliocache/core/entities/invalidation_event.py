"""Invalidation event entity and tag naming helpers."""

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any


class InvalidationScope(str, Enum):
    """Where a content mutation happened."""

    COLLECTION = "collection"
    GLOBAL = "global"


class MutationOperation(str, Enum):
    """Kind of content mutation."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


def collection_tag(name: str) -> str:
    return f"collection_{name}"


def global_tag(name: str) -> str:
    return f"global_{name}"


def record_tag(type_name: str, slug_or_id: Any) -> str:
    return f"{type_name}_{slug_or_id}"


@dataclass(frozen=True)
class InvalidationEvent:
    """A content mutation notification from the CMS write path.

    Transient: produced once per create/update/delete and consumed once
    by the dispatcher.
    """

    scope: InvalidationScope
    identifier: str
    affected_doc: Mapping[str, Any] | None = None
    operation: MutationOperation = MutationOperation.UPDATE

    @classmethod
    def for_collection(
        cls,
        name: str,
        doc: Mapping[str, Any] | None = None,
        operation: MutationOperation = MutationOperation.UPDATE,
    ) -> "InvalidationEvent":
        return cls(InvalidationScope.COLLECTION, name, doc, operation)

    @classmethod
    def for_global(
        cls,
        name: str,
        doc: Mapping[str, Any] | None = None,
    ) -> "InvalidationEvent":
        return cls(InvalidationScope.GLOBAL, name, doc)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "InvalidationEvent":
        """Build an event from a ``{collection|global, doc}`` request body.

        Raises:
            ValueError: If neither ``collection`` nor ``global`` is given.
        """
        doc = payload.get("doc")
        if not isinstance(doc, Mapping):
            doc = None
        if payload.get("global"):
            return cls.for_global(str(payload["global"]), doc)
        if payload.get("collection"):
            return cls.for_collection(str(payload["collection"]), doc)
        raise ValueError("payload must name a 'collection' or a 'global'")

    @property
    def slug(self) -> str | None:
        """The affected record's slug, if the payload carries one."""
        if self.affected_doc is None:
            return None
        slug = self.affected_doc.get("slug")
        return str(slug) if slug else None
