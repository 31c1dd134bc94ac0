"""
Structured lifecycle events for sessions, analyses and batches.

Every event is one JSON line: {"event": ..., <fields>}. Fields that are None
(an engine with no error, a run with no status code) are left out so log
lines stay comparable across engines.
"""

import json
import logging
from typing import Any


def event_payload(event: str, **fields: Any) -> str:
    """Serialize an event name and its non-None fields as compact JSON."""
    payload = {name: value for name, value in fields.items() if value is not None}
    payload["event"] = event
    return json.dumps(payload, default=str, sort_keys=True, ensure_ascii=False)


def log_event(logger: logging.Logger, level: int, event: str, **fields: Any) -> None:
    if not logger.isEnabledFor(level):
        return
    logger.log(level, event_payload(event, **fields))
