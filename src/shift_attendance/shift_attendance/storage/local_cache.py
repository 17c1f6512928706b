from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Union

logger = logging.getLogger(__name__)


class LocalCache:
    """Always-available JSON mirror of the application collections.

    One file per collection (``<dir>/<name>.json``); writes go through a
    temporary file and an atomic replace so a crash never leaves half a file.
    """

    def __init__(self, directory: Union[str, Path]):
        self._dir = Path(directory)

    @property
    def directory(self) -> Path:
        return self._dir

    def path_for(self, name: str) -> Path:
        return self._dir / f"{name}.json"

    def load(self, name: str) -> List[Dict[str, Any]]:
        path = self.path_for(name)
        if not path.exists():
            return []
        try:
            raw = path.read_text(encoding="utf-8").strip()
            if not raw:
                return []
            data = json.loads(raw)
        except (OSError, ValueError):
            logger.warning("cache file %s is unreadable, ignoring it", path, exc_info=True)
            return []
        if not isinstance(data, list):
            logger.warning("cache file %s does not hold a list, ignoring it", path)
            return []
        return data

    def save(self, name: str, items: List[Dict[str, Any]]) -> None:
        self._dir.mkdir(parents=True, exist_ok=True)
        path = self.path_for(name)
        tmp = path.with_suffix(path.suffix + ".tmp")
        tmp.write_text(json.dumps(items, ensure_ascii=False, indent=2), encoding="utf-8")
        tmp.replace(path)

    def clear(self, name: str) -> None:
        path = self.path_for(name)
        if path.exists():
            path.unlink()
