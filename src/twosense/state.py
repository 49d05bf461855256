"""JSON-file cursor store for poll instances.

One file per poll instance, ``poll_state_<instance>.json``, written
atomically via a .tmp rename. Long-running hosts can keep the cursor in
their own workflow store instead; PollCursorEngine does not depend on this
module.
"""

import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .models import CursorState

logger = logging.getLogger("twosense.state")

__all__ = ["CursorStore"]

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


class CursorStore:
    """Loads and saves the CursorState of a named poll instance.

    Attributes:
        state_dir: Directory holding the state files
        instance: Poll instance key
        state_file: Resolved JSON file path
    """

    STATE_FILENAME_PREFIX = "poll_state_"

    def __init__(self, state_dir: Path | str, instance: str = "default") -> None:
        self.state_dir = Path(state_dir)
        self.instance = instance
        # Use _ for unsafe characters so any instance name maps to one file
        safe = _UNSAFE_CHARS.sub("_", instance) or "default"
        self.state_file = self.state_dir / f"{self.STATE_FILENAME_PREFIX}{safe}.json"

    def load(self) -> CursorState:
        """Load the cursor for this instance.

        Returns:
            Stored CursorState, or an uninitialized one if the file is
            missing or unreadable.
        """
        raw = self.load_raw()
        return CursorState.from_dict(raw)

    def load_raw(self) -> dict[str, Any]:
        """Raw state dict including bookkeeping fields. Empty if missing."""
        if self.state_file.exists():
            try:
                data = json.loads(self.state_file.read_text(encoding="utf-8"))
                if isinstance(data, dict):
                    return data
                logger.warning("cursor_state_malformed", extra={"path": str(self.state_file)})
            except (json.JSONDecodeError, OSError) as e:
                logger.warning(
                    "cursor_state_load_failed",
                    extra={"path": str(self.state_file), "error": str(e)},
                )
        return {}

    def save(self, state: CursorState) -> None:
        """Persist the cursor atomically.

        Raises:
            OSError: If the state file cannot be written. The previous file
                is left intact.
        """
        self.state_dir.mkdir(parents=True, exist_ok=True)
        payload = {
            **state.to_dict(),
            "instance": self.instance,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        tmp_file = self.state_file.with_suffix(".json.tmp")
        try:
            tmp_file.write_text(json.dumps(payload, indent=2), encoding="utf-8")
            tmp_file.replace(self.state_file)
        except OSError as e:
            logger.error(
                "cursor_state_save_failed",
                extra={"path": str(self.state_file), "error": str(e)},
            )
            raise
        logger.debug(
            "cursor_state_saved",
            extra={"path": str(self.state_file), "last_event_time": state.last_event_time},
        )
