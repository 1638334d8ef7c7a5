from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from board import BoardStore
from main import create_app
from settings import BASE_DIR, BoardSettings


@pytest.fixture
def settings(tmp_path: Path) -> BoardSettings:
    return BoardSettings(
        public_dir=tmp_path / "public",
        templates_dir=BASE_DIR / "templates",
        data_dir=tmp_path / "data",
        upload_dir=tmp_path / "uploads",
    )


@pytest.fixture
def client(settings: BoardSettings) -> TestClient:
    return TestClient(create_app(settings))


@pytest.fixture
def store(settings: BoardSettings) -> BoardStore:
    return BoardStore(settings.data_file)
