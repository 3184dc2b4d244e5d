from __future__ import annotations

import json
import logging
import time
from typing import Any, Dict

Json = Dict[str, Any]

_CONFIGURED_ATTR = "_sss_control_configured"


def _now_ms() -> int:
    return int(time.time() * 1000)


def get_logger(area: str) -> logging.Logger:
    return logging.getLogger(f"sss_control.{area}")


def configure_logging(level: str = "INFO") -> None:
    """Configure the `sss_control` logger tree for JSONL output (stdout).

    Safe to call multiple times; later calls only adjust the level.
    """
    lvl = getattr(logging, str(level or "INFO").strip().upper(), logging.INFO)

    root = logging.getLogger("sss_control")
    if getattr(root, _CONFIGURED_ATTR, False):
        root.setLevel(lvl)
        for h in root.handlers:
            h.setLevel(lvl)
        return

    handler = logging.StreamHandler()
    handler.setLevel(lvl)
    handler.setFormatter(logging.Formatter("%(message)s"))

    root.handlers = [handler]
    root.setLevel(lvl)
    root.propagate = False
    setattr(root, _CONFIGURED_ATTR, True)


def log_event(logger: logging.Logger, event: str, *, level: int = logging.INFO, **fields: Any) -> None:
    """Emit a single JSONL log event.

    Pubkeys and enums in `fields` are rendered with str().
    """
    payload: Json = {"ts_ms": _now_ms(), "event": str(event)}
    payload.update(fields)
    try:
        line = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        parts = [f"event={event}"] + [f"{k}={fields.get(k)!r}" for k in sorted(fields.keys())]
        line = " ".join(parts)
    logger.log(level, line)


__all__ = ["get_logger", "configure_logging", "log_event"]
