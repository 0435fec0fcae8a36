from __future__ import annotations

import json
import threading
from typing import Any, Dict
from pathlib import Path


class JSONExporter:
    """
    Writes one record per JSON file, replacing any previous version.
    """

    def export(self, record: Dict[str, Any], path: str) -> None:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        tmp = target.with_suffix(target.suffix + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(record, f, indent=2, ensure_ascii=False)
        tmp.replace(target)


class JSONLinesExporter:
    """
    Appends one record per line to a JSONL file.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()

    def export(self, record: Dict[str, Any], path: str) -> None:
        line = json.dumps(record, ensure_ascii=False)
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        with self._lock, open(path, "a", encoding="utf-8") as f:
            f.write(line + "\n")


__all__ = ["JSONExporter", "JSONLinesExporter"]
