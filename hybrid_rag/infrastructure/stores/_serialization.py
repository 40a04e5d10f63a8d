"""Dict conversion for persisted chunks and records."""
from dataclasses import asdict
from typing import Any

from ...core.models.document import Chunk, IndexEntry, IndexStatus


def chunk_to_dict(chunk: Chunk) -> dict[str, Any]:
    return asdict(chunk)


def chunk_from_dict(data: dict[str, Any]) -> Chunk:
    return Chunk(
        id=data["id"],
        parent_id=data["parent_id"],
        ordinal=int(data["ordinal"]),
        text=data["text"],
        content_hash=data["content_hash"],
        embedding=data.get("embedding"),
        updated_at=int(data.get("updated_at", 0)),
        metadata=data.get("metadata") or {},
    )


def entry_to_dict(entry: IndexEntry) -> dict[str, Any]:
    data = asdict(entry)
    data["status"] = entry.status.value
    return data


def entry_from_dict(data: dict[str, Any]) -> IndexEntry:
    data = dict(data)
    data["status"] = IndexStatus(data.get("status", IndexStatus.UPLOADING.value))
    return IndexEntry(**data)
