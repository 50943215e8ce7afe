"""Session model."""

import json
from dataclasses import asdict, dataclass


@dataclass(frozen=True)
class Session:
    id: str
    text: str
    created_at: float
    expires_at: float

    def is_live(self, now: float) -> bool:
        return now < self.expires_at

    def to_json(self) -> str:
        record = asdict(self)
        record.pop("id")
        return json.dumps(record)

    @classmethod
    def from_json(cls, session_id: str, raw: str) -> "Session":
        record = json.loads(raw)
        return cls(
            id=session_id,
            text=record["text"],
            created_at=float(record["created_at"]),
            expires_at=float(record["expires_at"]),
        )
