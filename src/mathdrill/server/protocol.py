"""JSON-lines protocol messages for driving a drill session over stdio."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Optional


class ProtocolError(ValueError):
    """A line that is not a well-formed request."""


@dataclass
class Request:
    """Incoming request from a front end."""
    id: int
    method: str
    params: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> Request:
        if not isinstance(data, dict) or "method" not in data:
            raise ProtocolError("Request must be an object with a method")
        params = data.get("params") or {}
        if not isinstance(params, dict):
            raise ProtocolError("params must be an object")
        return cls(id=data.get("id", 0), method=data["method"], params=params)

    @classmethod
    def from_json_line(cls, line: str) -> Request:
        try:
            data = json.loads(line)
        except json.JSONDecodeError as e:
            raise ProtocolError(f"Invalid JSON: {e}") from e
        return cls.from_dict(data)


@dataclass
class Response:
    """Outgoing response; carries either a result or an error string."""
    id: int
    result: Optional[dict] = None
    error: Optional[str] = None

    def to_json_line(self) -> str:
        d = {"id": self.id}
        if self.error is not None:
            d["error"] = self.error
        else:
            d["result"] = self.result
        return json.dumps(d) + "\n"


@dataclass
class Notification:
    """Server-initiated message (no id, no response expected)."""
    method: str
    params: dict = field(default_factory=dict)

    def to_json_line(self) -> str:
        return json.dumps({"method": self.method, "params": self.params}) + "\n"
