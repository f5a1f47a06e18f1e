"""
Debug Log Utility

Provides optional, safe file-based debug logging for tracing the orchestration
core (discarded stale loads, benign no-op requests, slot failures). Logs are
written only when enabled via environment variable; failures are swallowed so
the viewer never crashes due to logging.

Inputs:
    - debug_log(location, message, data) calls from application code
    - Environment: VIEWPORTCORE_DEBUG_LOG (set to 1, true, or yes to enable)
    - Environment: VIEWPORTCORE_DEBUG_LOG_PATH (optional log file path)

Outputs:
    - When enabled: appends JSON lines to the log file
      (default <project_root>/.debug/viewport_core.log)
    - When disabled or on error: no side effects

Requirements:
    - Standard library only: pathlib, os, json, time
"""

import json
import os
import time
from pathlib import Path
from typing import Any, Dict, Optional

# This file is src/utils/debug_log.py -> parent=utils, parent.parent=src, parent.parent.parent=project root
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


def _env_enabled(name: str) -> bool:
    return os.getenv(name, "0").strip().lower() in ("1", "true", "yes")


# Default off.
DEBUG_LOG_ENABLED = _env_enabled("VIEWPORTCORE_DEBUG_LOG")


def get_log_path() -> Path:
    """Return the path debug lines are appended to."""
    override = os.getenv("VIEWPORTCORE_DEBUG_LOG_PATH", "").strip()
    if override:
        return Path(override)
    return _PROJECT_ROOT / ".debug" / "viewport_core.log"


def debug_log(
    location: str,
    message: str,
    data: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Append one JSON log line when debug logging is enabled.

    Failures (missing dir, permission, disk full, etc.) are caught and ignored
    so the application remains stable.

    Args:
        location: Call site identifier (e.g. "cine_playback_engine.py:_on_frame_loaded").
        message: Short description of the event.
        data: Arbitrary dict of context; non-JSON values are stringified.
    """
    if not DEBUG_LOG_ENABLED:
        return
    try:
        log_path = get_log_path()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "location": location,
            "message": message,
            "data": data or {},
            "timestamp": int(time.time() * 1000),
        }
        with open(log_path, "a", encoding="utf-8") as f:
            f.write(json.dumps(payload, default=str) + "\n")
    except Exception:
        pass
