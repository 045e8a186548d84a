import json
import os
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional

from backend.core.logging import get_logger

logger = get_logger(__name__)


class FormStore:
    """Persist the last-entered form text as a flat JSON string map."""

    def __init__(self, path: Path, allowed_keys: Optional[Iterable[str]] = None) -> None:
        self.path = Path(path)
        self.allowed_keys = frozenset(allowed_keys) if allowed_keys is not None else None
        self._lock = threading.Lock()

    def _clean(self, values: Mapping[str, Any]) -> Dict[str, str]:
        cleaned: Dict[str, str] = {}
        for key, value in (values or {}).items():
            if self.allowed_keys is not None and key not in self.allowed_keys:
                continue
            if value is None:
                continue
            text = str(value)
            if not text:
                continue
            cleaned[str(key)] = text
        return cleaned

    def load(self) -> Dict[str, str]:
        with self._lock:
            if not self.path.exists():
                return {}
            try:
                with self.path.open("r", encoding="utf-8") as f:
                    parsed = json.load(f)
            except (OSError, ValueError) as exc:
                logger.warning(
                    "form_store_load_failed",
                    extra={"event": "form_store_load_failed", "path": str(self.path), "error": str(exc)},
                )
                return {}
        if not isinstance(parsed, dict):
            return {}
        return self._clean(parsed)

    def save(self, values: Mapping[str, Any]) -> Dict[str, str]:
        cleaned = self._clean(values)
        with self._lock:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
                with tmp_path.open("w", encoding="utf-8") as f:
                    json.dump(cleaned, f, ensure_ascii=False)
                os.replace(tmp_path, self.path)
            except OSError as exc:
                logger.warning(
                    "form_store_save_failed",
                    extra={"event": "form_store_save_failed", "path": str(self.path), "error": str(exc)},
                )
                raise
        return cleaned

    def clear(self) -> None:
        with self._lock:
            try:
                self.path.unlink()
            except FileNotFoundError:
                pass
