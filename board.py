"""Persisted board document: one JSON file holding the page copy and mood images."""

from __future__ import annotations

import copy
import json
import logging
import math
import os
import tempfile
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

LOGGER = logging.getLogger(__name__)

BOARD_VERSION = 1
FILE_MODE = 0o644

_DEFAULT_CONTENT: Dict[str, Any] = {
    "subtitle": "Click the text to edit. Upload images in Mood & Aesthetic.",
    "intentionsTitle": "Intentions",
    "intentionsTag": "Focus",
    "intentionsItems": [
        "Choose clarity over chaos.",
        "Build momentum with small daily wins.",
        "Be present with people I love.",
        "Create work I’m proud to share.",
    ],
    "quoteMain": "“Warm heart, clear mind, steady steps.”",
    "quoteSub": "My energy for 2026",
    "habitsTitle": "Habits",
    "habitsTag": "Daily",
    "habitsItems": [
        "30 minutes deep work before scrolling.",
        "Move my body (walk, swim, stretch).",
        "One meaningful check-in with someone.",
        "Write 3 lines of gratitude.",
    ],
    "moodTitle": "Mood & Aesthetic",
    "moodTag": "Playful + Warm",
    "moodHint": "No crop: images keep their full height. This panel scrolls.",
    "goalsTitle": "Goals",
    "goalsTag": "Milestones",
    "goalsItems": [
        "One project shipped that I truly care about.",
        "Stronger health routine (sleep, movement, meals).",
        "More time outdoors + mini trips.",
        "Save and invest consistently.",
    ],
    "peopleTitle": "People & Places",
    "peopleTag": "Connection",
    "peopleItems": [
        "Make space for friendships that feel easy.",
        "Plan 2–3 meaningful catch-ups each month.",
        "Create a home vibe that feels calm and warm.",
    ],
    "footerTip": "Tip: click text to edit. Mood images show fully (no cropping).",
}


def utc_timestamp(now: Optional[datetime] = None) -> str:
    """ISO-8601 UTC with millisecond precision, e.g. ``2026-01-02T03:04:05.678Z``."""

    moment = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-finite number {name} is not valid JSON")


def _finite_float(text: str) -> float:
    value = float(text)
    if not math.isfinite(value):
        raise ValueError(f"Number {text} is out of range")
    return value


def strict_loads(raw: Union[str, bytes]) -> Any:
    """``json.loads`` that refuses ``NaN``, ``Infinity`` and overflowing numbers."""

    return json.loads(raw, parse_constant=_reject_constant, parse_float=_finite_float)


def default_board() -> Dict[str, Any]:
    return {
        "version": BOARD_VERSION,
        "updatedAt": utc_timestamp(),
        "content": copy.deepcopy(_DEFAULT_CONTENT),
        "moodImages": [],
    }


class BoardStore:
    """Single-document store backed by ``path``.

    Reads never raise: a missing, blank, malformed or non-object file is
    reported as ``None`` and callers fall back to :func:`default_board`.
    Writes replace the file through a sibling temp file and propagate errors.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def read(self) -> Optional[Dict[str, Any]]:
        if not self.path.exists():
            return None
        try:
            raw = self.path.read_text(encoding="utf-8").strip()
            if not raw:
                return None
            data = strict_loads(raw)
        except (OSError, UnicodeDecodeError, ValueError) as exc:
            LOGGER.warning("Ignoring unreadable board file %s: %s", self.path, exc)
            return None
        if not isinstance(data, dict):
            LOGGER.warning("Ignoring board file %s: top level is not an object", self.path)
            return None
        return data

    def write(self, doc: Mapping[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(doc, handle, indent=2, ensure_ascii=False, allow_nan=False)
            os.chmod(tmp_name, FILE_MODE)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def default(self) -> Dict[str, Any]:
        return default_board()

    def load(self) -> Dict[str, Any]:
        return self.read() or self.default()

    def save(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        """Replace ``content`` and/or ``moodImages`` wholesale and persist.

        Fields that are missing or of the wrong shape keep their stored value.
        """

        with self._lock:
            current = self.load()
            content = payload.get("content")
            mood_images = payload.get("moodImages")
            next_doc: Dict[str, Any] = {
                "version": BOARD_VERSION,
                "updatedAt": utc_timestamp(),
                "content": content if isinstance(content, dict) else current.get("content"),
                "moodImages": (
                    mood_images if isinstance(mood_images, list) else current.get("moodImages")
                ),
            }
            self.write(next_doc)
        LOGGER.info("Saved board to %s", self.path)
        return next_doc

    def remove_mood_image(self, filename: str) -> bool:
        """Drop every reference to ``filename``; no-op when nothing is stored."""

        with self._lock:
            doc = self.read()
            if doc is None or not isinstance(doc.get("moodImages"), list):
                return False
            images: List[Any] = doc["moodImages"]
            doc["moodImages"] = [name for name in images if name != filename]
            doc["updatedAt"] = utc_timestamp()
            self.write(doc)
        return True
