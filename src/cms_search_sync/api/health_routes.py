import os
from pathlib import Path

from fastapi import APIRouter

from ..config import settings

router = APIRouter(tags=["health"])


@router.get("/health")
def health():
    # Reindex runs cannot resume without a writable session root
    data_root = Path(settings.data_root_path)
    return {
        "status": "ok",
        "index": settings.index_name,
        "sessions_writable": data_root.is_dir() and os.access(data_root, os.W_OK),
    }
