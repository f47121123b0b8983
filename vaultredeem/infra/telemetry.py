from __future__ import annotations

import json
import threading
import time
import uuid
from pathlib import Path
from typing import Any


class RedeemJournal:
    """Append-only JSONL record of session transitions and transactions.

    Every row carries the journal's ``run_id`` so one CLI run can be pulled
    back out of a shared file.
    """

    def __init__(self, data_dir: str, filename: str = "redeem_events.jsonl", run_id: str | None = None):
        self.path = Path(data_dir) / filename
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.run_id = run_id or uuid.uuid4().hex[:12]
        self._lock = threading.Lock()

    def emit(self, event: str, **fields: Any) -> None:
        row = {"ts": round(time.time(), 3), "run": self.run_id, "event": event}
        row.update(fields)
        line = json.dumps(row, separators=(",", ":"), ensure_ascii=True, default=str)
        with self._lock, self.path.open("a", encoding="utf-8") as f:
            f.write(line + "\n")

    def read(self, run_id: str | None = None) -> list[dict[str, Any]]:
        """Rows in file order; only this journal's run unless ``run_id`` says otherwise."""
        want = run_id or self.run_id
        if not self.path.exists():
            return []
        with self.path.open("r", encoding="utf-8") as f:
            rows = [json.loads(line) for line in f if line.strip()]
        return [r for r in rows if r.get("run") == want]
