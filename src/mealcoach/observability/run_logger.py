"""
MealCoach - Run Logger.

JSONL log per CLI run, for looking back at what a sanitation, shopping or
advisor run produced.

Features:
- One JSONL file per run (easy to parse, tail -f friendly)
- Step timing
- Smart truncation of large values (plans and pools get big)

Usage:
    from mealcoach.observability.run_logger import RunLogger

    run_log = RunLogger(command="shopping")
    run_log.step_start("build_shopping_list")
    run_log.step_end("build_shopping_list", {"items": 12})
    run_log.close()

Log format (JSONL):
    {"ts": "2026-01-01T17:30:00", "event": "step_end", "step": "build_shopping_list", ...}
"""

import json
import time
from datetime import datetime
from pathlib import Path
from typing import Any

# =============================================================================
# Configuration
# =============================================================================

LOG_DIR = Path("run_logs")

MAX_STRING_LEN = 200
MAX_LIST_ITEMS = 5
MAX_DICT_KEYS = 12

# Plan-sized payloads are only summarized
HEAVY_FIELDS = {"plan", "pool", "days", "meals", "ingredient_refs", "ingredientRefs"}


# =============================================================================
# Smart Truncation
# =============================================================================


def truncate_value(value: Any, depth: int = 0) -> Any:
    """
    Shrink a value for logging.

    Long strings are cut, lists keep their first items plus a count, dicts
    their first keys. Pydantic models and dataclasses are dumped first.
    """
    if depth > 3:
        return "<nested>"

    if value is None or isinstance(value, (bool, int, float)):
        return value

    if isinstance(value, str):
        if len(value) > MAX_STRING_LEN:
            return value[:MAX_STRING_LEN] + f"... ({len(value)} chars)"
        return value

    if isinstance(value, (list, tuple)):
        head = [truncate_value(v, depth + 1) for v in value[:MAX_LIST_ITEMS]]
        if len(value) > MAX_LIST_ITEMS:
            head.append(f"... +{len(value) - MAX_LIST_ITEMS} more")
        return head

    if isinstance(value, dict):
        result = {}
        for key in list(value)[:MAX_DICT_KEYS]:
            item = value[key]
            if key in HEAVY_FIELDS and isinstance(item, (list, dict)):
                result[key] = f"<{type(item).__name__} of {len(item)}>"
            else:
                result[key] = truncate_value(item, depth + 1)
        if len(value) > MAX_DICT_KEYS:
            result["_truncated"] = f"+{len(value) - MAX_DICT_KEYS} keys"
        return result

    if hasattr(value, "model_dump"):
        return truncate_value(value.model_dump(by_alias=True), depth)
    if hasattr(value, "to_dict"):
        return truncate_value(value.to_dict(), depth)
    if hasattr(value, "__dict__"):
        return truncate_value(vars(value), depth)

    return str(value)[:MAX_STRING_LEN]


# =============================================================================
# Run Logger
# =============================================================================


class RunLogger:
    """Per-run logger writing JSONL; a disabled logger is a no-op."""

    def __init__(
        self,
        command: str,
        run_id: str | None = None,
        enabled: bool = True,
        log_dir: Path | None = None,
    ):
        self.enabled = enabled
        self.command = command
        self._step_start_times: dict[str, float] = {}
        self.log_file = None
        self.log_path: Path | None = None

        if not enabled:
            return

        log_dir = log_dir or LOG_DIR
        log_dir.mkdir(parents=True, exist_ok=True)

        self.run_id = run_id or datetime.now().strftime("%Y%m%d_%H%M%S")
        self.log_path = log_dir / f"{command}_{self.run_id}.jsonl"
        self.log_file = open(self.log_path, "a", encoding="utf-8")

        self._write({"event": "run_start", "command": command, "run_id": self.run_id})

    def _write(self, data: dict) -> None:
        if not self.enabled or self.log_file is None:
            return
        entry = {"ts": datetime.now().isoformat(), **data}
        self.log_file.write(json.dumps(entry, default=str, ensure_ascii=False) + "\n")
        self.log_file.flush()

    # =========================================================================
    # Steps
    # =========================================================================

    def step_start(self, step: str, inputs: dict | None = None) -> None:
        self._step_start_times[step] = time.time()
        self._write({
            "event": "step_start",
            "step": step,
            "inputs": truncate_value(inputs) if inputs else None,
        })

    def step_end(self, step: str, outputs: Any = None, error: str | None = None) -> None:
        """Log step completion with duration."""
        start = self._step_start_times.pop(step, None)
        duration_ms = int((time.time() - start) * 1000) if start else None
        self._write({
            "event": "step_end",
            "step": step,
            "duration_ms": duration_ms,
            "outputs": truncate_value(outputs) if outputs is not None else None,
            "error": error,
        })

    def log(self, event_type: str, **kwargs) -> None:
        """Log custom event."""
        self._write({"event": event_type, **truncate_value(kwargs)})

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def close(self) -> str | None:
        """Close the log file. Returns log path."""
        if self.log_file:
            self._write({"event": "run_end", "command": self.command})
            self.log_file.close()
            self.log_file = None
            return str(self.log_path)
        return None

    def __enter__(self) -> "RunLogger":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
