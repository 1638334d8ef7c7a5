from __future__ import annotations

import json
import logging
from typing import Any, List, Optional

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from starlette.datastructures import UploadFile

import mood
from board import BoardStore, strict_loads
from settings import HOST, PORT, BoardSettings

LOGGER = logging.getLogger(__name__)

UPLOAD_FIELDS = ("images", "images[]")


class PayloadError(Exception):
    """Client sent a body the API cannot use; answered as ``{ok: false, error}``."""

    def __init__(self, message: str, status_code: int = 400) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


async def _read_json(request: Request, limit: int) -> Any:
    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > limit:
        raise PayloadError("Payload too large", status_code=413)
    raw = await request.body()
    if len(raw) > limit:
        raise PayloadError("Payload too large", status_code=413)
    if not raw.strip():
        return {}
    try:
        return strict_loads(raw)
    except ValueError as exc:
        raise PayloadError("Invalid payload") from exc


def create_app(settings: Optional[BoardSettings] = None) -> FastAPI:
    settings = settings or BoardSettings.from_env()
    settings.ensure_dirs()

    store = BoardStore(settings.data_file)
    templates = Jinja2Templates(directory=str(settings.templates_dir))

    app = FastAPI(title="Vision Board")
    app.state.settings = settings
    app.state.store = store

    @app.exception_handler(PayloadError)
    async def payload_error_handler(request: Request, exc: PayloadError) -> JSONResponse:
        return JSONResponse({"ok": False, "error": exc.message}, status_code=exc.status_code)

    @app.get("/", response_class=HTMLResponse)
    async def read_board_page(request: Request) -> HTMLResponse:
        """Render the board with the stored document embedded."""
        return templates.TemplateResponse(
            request,
            "index.html",
            {
                "board_json": json.dumps(store.load(), ensure_ascii=False),
                "uploads_url": settings.uploads_url,
            },
        )

    @app.get("/api/board")
    async def get_board() -> JSONResponse:
        return JSONResponse(store.load())

    @app.post("/api/board")
    async def save_board(request: Request) -> JSONResponse:
        payload = await _read_json(request, settings.json_limit)
        if not isinstance(payload, dict):
            raise PayloadError("Invalid payload")
        store.save(payload)
        return JSONResponse({"ok": True})

    @app.post("/api/upload-mood")
    async def upload_mood(request: Request) -> JSONResponse:
        async with request.form() as form:
            files: List[UploadFile] = [
                value
                for field in UPLOAD_FIELDS
                for value in form.getlist(field)
                if isinstance(value, UploadFile)
            ]
            try:
                saved = await mood.save_mood_images(
                    files,
                    settings.upload_dir,
                    max_files=settings.max_files,
                    max_file_size=settings.max_file_size,
                    public_prefix=settings.uploads_url,
                )
            except mood.UploadError as exc:
                raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc
        return JSONResponse({"ok": True, "files": [image.to_dict() for image in saved]})

    @app.post("/api/delete-mood")
    async def delete_mood(request: Request) -> JSONResponse:
        payload = await _read_json(request, settings.json_limit)
        filename = payload.get("filename") if isinstance(payload, dict) else None
        if not filename or not isinstance(filename, str):
            raise PayloadError("filename required")

        mood.delete_mood_file(settings.upload_dir, filename)
        store.remove_mood_image(filename)
        return JSONResponse({"ok": True})

    app.mount("/static", StaticFiles(directory=str(settings.public_dir)), name="static")
    app.mount(settings.uploads_url, StaticFiles(directory=str(settings.upload_dir)), name="uploads")
    return app


app = create_app()


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    LOGGER.info("Server running: http://localhost:%d", PORT)
    uvicorn.run(app, host=HOST, port=PORT)


if __name__ == "__main__":
    main()
