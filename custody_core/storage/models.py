# custody_core/storage/models.py
from __future__ import annotations
from dataclasses import asdict, dataclass, field
from typing import Any, Dict

from custody_core.utils import new_id, now_ts


@dataclass
class AuthRecord:
    """
    Storage-level representation of a custodial registration.

    `id` is the derived storage key and `credentials` the hex envelope. The
    record never holds the raw identity, the pin or the cipher key.
    """
    id: str
    credentials: str
    record_id: str = field(default_factory=new_id)
    created_at: str = field(default_factory=now_ts)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AuthRecord":
        return cls(
            id=data["id"],
            credentials=data["credentials"],
            record_id=data.get("record_id") or new_id(),
            created_at=data.get("created_at") or now_ts(),
        )
