"""Host event model

A small stand-in for the pipeline's event type: a JSON-like dict addressed
with ``[outer][inner]`` field references, a separate ``@metadata`` map that is
never serialized, and a ``tags`` list.
"""
import copy
import json
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

METADATA_FIELD = '@metadata'
TIMESTAMP_FIELD = '@timestamp'
VERSION_FIELD = '@version'
TAGS_FIELD = 'tags'

_REFERENCE_PART = re.compile(r'\[([^\[\]]+)\]')


def _now_iso() -> str:
    now = datetime.now(timezone.utc)
    return now.strftime('%Y-%m-%dT%H:%M:%S.') + f'{now.microsecond // 1000:03d}Z'


def parse_reference(reference: str) -> List[str]:
    """Split a field reference into path segments

    ``"message"`` -> ``["message"]``; ``"[host][name]"`` -> ``["host", "name"]``
    """
    if not reference.startswith('['):
        return [reference]
    parts = _REFERENCE_PART.findall(reference)
    if ''.join(f'[{p}]' for p in parts) != reference:
        raise ValueError(f"Invalid field reference: {reference!r}")
    return parts


class Event:
    """A pipeline event"""

    def __init__(self, data: Optional[Dict[str, Any]] = None):
        data = copy.deepcopy(data) if data else {}
        self._metadata: Dict[str, Any] = data.pop(METADATA_FIELD, None) or {}
        data.setdefault(TIMESTAMP_FIELD, _now_iso())
        data.setdefault(VERSION_FIELD, '1')
        self._data = data

    @classmethod
    def from_json(cls, text: str) -> 'Event':
        """Build an event from a JSON object"""
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError(f"Event JSON must be an object, got {type(data).__name__}")
        return cls(data)

    def _root_and_path(self, reference: str):
        path = parse_reference(reference)
        if path[0] == METADATA_FIELD:
            return self._metadata, path[1:]
        return self._data, path

    def get(self, reference: str, default: Any = None) -> Any:
        """Return the value at *reference*, or *default* if any segment is missing"""
        node, path = self._root_and_path(reference)
        for key in path:
            if not isinstance(node, dict) or key not in node:
                return default
            node = node[key]
        return node

    def includes(self, reference: str) -> bool:
        marker = object()
        return self.get(reference, marker) is not marker

    def set(self, reference: str, value: Any) -> None:
        """Set *value* at *reference*, creating intermediate maps as needed"""
        node, path = self._root_and_path(reference)
        if not path:
            if not isinstance(value, dict):
                raise ValueError("@metadata must be a map")
            self._metadata = value
            return
        for key in path[:-1]:
            child = node.get(key)
            if not isinstance(child, dict):
                child = {}
                node[key] = child
            node = child
        node[path[-1]] = value

    def remove(self, reference: str) -> Any:
        node, path = self._root_and_path(reference)
        for key in path[:-1]:
            node = node.get(key) if isinstance(node, dict) else None
        if isinstance(node, dict) and path:
            return node.pop(path[-1], None)
        return None

    @property
    def metadata(self) -> Dict[str, Any]:
        return self._metadata

    @property
    def tags(self) -> List[str]:
        return list(self._data.get(TAGS_FIELD) or [])

    def tag(self, name: str) -> None:
        """Add *name* to the event's tags unless already present"""
        tags = self._data.setdefault(TAGS_FIELD, [])
        if name not in tags:
            tags.append(name)

    def to_dict(self) -> Dict[str, Any]:
        """Deep copy of the event fields, without ``@metadata``"""
        return copy.deepcopy(self._data)

    def to_json(self) -> str:
        return json.dumps(self._data, separators=(',', ':'), ensure_ascii=False)

    def __eq__(self, other):
        if not isinstance(other, Event):
            return NotImplemented
        return self._data == other._data and self._metadata == other._metadata

    def __repr__(self):
        return f"Event({self._data!r}, metadata={self._metadata!r})"
