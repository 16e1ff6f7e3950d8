import logging
import uuid
from pathlib import Path

from regadmin.core.config import settings

logger = logging.getLogger(__name__)


def user_dir(user_id: int) -> Path:
    return Path(settings.STORAGE_DIR) / str(user_id)


def save_upload(user_id: int, original_name: str, content: bytes) -> str:
    """Write bytes under the user's folder; returns the stored file name."""
    suffix = Path(original_name).suffix
    stored_name = f"{uuid.uuid4().hex}{suffix}"
    folder = user_dir(user_id)
    folder.mkdir(parents=True, exist_ok=True)
    (folder / stored_name).write_bytes(content)
    return stored_name


def stored_path(user_id: int, stored_name: str) -> Path:
    return user_dir(user_id) / stored_name


def remove_stored(user_id: int, stored_name: str) -> None:
    path = stored_path(user_id, stored_name)
    if path.exists():
        path.unlink()
    else:
        logger.warning("Stored file already missing: %s", path)
