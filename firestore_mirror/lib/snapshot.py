"""Read-only document snapshot value."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Mapping, Optional

__all__ = ["DocumentSnapshot"]


@dataclass(frozen=True)
class DocumentSnapshot:
    """A fetched document: full path, field data and storage metadata.

    Example:
        snapshot = DocumentSnapshot(
            path="users/u1/orders/o42",
            data={"total": 10},
            update_time=datetime(2024, 2, 2, tzinfo=timezone.utc),
        )
        snapshot.id  # "o42"
    """

    path: str
    data: Mapping[str, Any] = field(default_factory=dict)
    update_time: Optional[datetime] = None
    create_time: Optional[datetime] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", MappingProxyType(dict(self.data or {})))

    @property
    def id(self) -> str:
        return self.path.strip("/").rsplit("/", 1)[-1]

    @classmethod
    def from_firestore(cls, snapshot: Any) -> "DocumentSnapshot":
        """Adapt a google-cloud-firestore DocumentSnapshot."""
        return cls(
            path=snapshot.reference.path,
            data=snapshot.to_dict() or {},
            update_time=getattr(snapshot, "update_time", None),
            create_time=getattr(snapshot, "create_time", None),
        )
