from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from regadmin.core.config import settings
from regadmin.db.session import get_db

router = APIRouter(tags=["health"])


@router.get("/health")
def health(db: Session = Depends(get_db)):
    db.execute(text("SELECT 1"))
    return {
        "status": "ok",
        "database": db.get_bind().dialect.name,
        "storage": {
            "imports": settings.IMPORT_DIR.is_dir(),
            "exports": settings.EXPORT_DIR.is_dir(),
            "user_files": settings.STORAGE_DIR.is_dir(),
        },
    }
