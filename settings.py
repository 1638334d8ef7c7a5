"""Filesystem layout and request limits for the vision board server."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent

HOST = "127.0.0.1"
PORT = 3000

MAX_FILES = 30
MAX_FILE_SIZE = 12 * 1024 * 1024
JSON_LIMIT = 2 * 1024 * 1024


@dataclass
class BoardSettings:
    base_dir: Path = BASE_DIR
    public_dir: Path = BASE_DIR / "static"
    templates_dir: Path = BASE_DIR / "templates"
    data_dir: Path = BASE_DIR / "data"
    upload_dir: Path = BASE_DIR / "uploads"
    data_filename: str = "vision-board.txt"  # JSON stored in .txt
    uploads_url: str = "/uploads"
    max_files: int = MAX_FILES
    max_file_size: int = MAX_FILE_SIZE
    json_limit: int = JSON_LIMIT

    @property
    def data_file(self) -> Path:
        return self.data_dir / self.data_filename

    @classmethod
    def from_env(cls) -> "BoardSettings":
        settings = cls()
        data_dir = os.getenv("VISION_BOARD_DATA_DIR")
        if data_dir:
            settings.data_dir = Path(data_dir)
        upload_dir = os.getenv("VISION_BOARD_UPLOAD_DIR")
        if upload_dir:
            settings.upload_dir = Path(upload_dir)
        return settings

    def ensure_dirs(self) -> None:
        for directory in (self.public_dir, self.data_dir, self.upload_dir):
            directory.mkdir(parents=True, exist_ok=True)
