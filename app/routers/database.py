from __future__ import annotations

import io
import logging
import os
import shutil
import zipfile
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile, status
from fastapi.concurrency import run_in_threadpool

from app.config import settings
from app.db import sqlite_path
from app.deps import require_sysadmin
from app.schemas import AuthContext, ok

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/database", tags=["database"])

DB_FILENAME = "baby-control.db"
SQLITE_HEADER = b"SQLite format 3\x00"


# -------------------- Helper Functions --------------------

def _database_file() -> str:
    path = sqlite_path()
    if not path:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Backup and restore are only available for SQLite deployments")
    return path


def build_backup(db_path: str, env_path: str, today: str) -> bytes:
    """Zip con la base de datos y, si existe, el fichero .env."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
        archive.write(db_path, DB_FILENAME)
        if os.path.isfile(env_path):
            archive.write(env_path, f"{today}.backup.env")
    return buffer.getvalue()


def _keep_copy(path: str, today: str) -> None:
    if os.path.isfile(path):
        shutil.copy2(path, f"{path}.backup-{today}")


def restore_files(content: bytes, filename: str, db_path: str, env_path: str, today: str) -> bool:
    """
    Sustituye la base de datos (y el .env si viene en el zip).
    Devuelve True si se restauró también el .env.
    """
    env_content: Optional[bytes] = None
    if filename.lower().endswith(".zip"):
        try:
            with zipfile.ZipFile(io.BytesIO(content)) as archive:
                names = archive.namelist()
                db_member = next((n for n in names if os.path.basename(n) == DB_FILENAME), None)
                if db_member is None:
                    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Backup does not contain {DB_FILENAME}")
                db_content = archive.read(db_member)
                env_member = next((n for n in names if n.endswith(".env")), None)
                if env_member is not None:
                    env_content = archive.read(env_member)
        except zipfile.BadZipFile:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid zip file")
    else:
        db_content = content

    if not db_content.startswith(SQLITE_HEADER):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="File is not a valid SQLite database")

    _keep_copy(db_path, today)
    with open(db_path, "wb") as fh:
        fh.write(db_content)

    if env_content is not None:
        _keep_copy(env_path, today)
        with open(env_path, "wb") as fh:
            fh.write(env_content)
    return env_content is not None


# -------------------- Endpoints --------------------

@router.get("")
async def download_backup(_: AuthContext = Depends(require_sysadmin)):
    db_path = _database_file()
    today = date.today().isoformat()
    payload = await run_in_threadpool(build_backup, db_path, settings.env_file, today)
    logger.info("Database backup generated", extra={"bytes": len(payload)})
    return Response(
        content=payload,
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="baby-control-backup-{today}.zip"'},
    )


@router.post("")
async def restore_backup(
    file: Optional[UploadFile] = File(None),
    _: AuthContext = Depends(require_sysadmin),
):
    if file is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file uploaded")
    db_path = _database_file()
    content = await file.read()
    today = date.today().isoformat()

    env_restored = await run_in_threadpool(
        restore_files, content, file.filename or "", db_path, settings.env_file, today
    )
    logger.warning("Database restored from backup", extra={"upload": file.filename, "env_restored": env_restored})
    return ok({"message": "Database restored successfully", "envRestored": env_restored})
