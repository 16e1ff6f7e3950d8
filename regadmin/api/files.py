from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from regadmin.api.users import get_user_or_404
from regadmin.core.access import assert_can_update_user, assert_can_view_user
from regadmin.core.activity import log_activity
from regadmin.core.config import settings
from regadmin.core.security import get_current_user
from regadmin.db.session import get_db
from regadmin.models.user import User
from regadmin.models.user_file import UserFile
from regadmin.schemas.user_file import BulkDeleteRequest, UploadSummary, UserFileOut
from regadmin.services.storage import remove_stored, save_upload, stored_path

router = APIRouter(prefix="/users/{user_id}/files", tags=["user-files"])


def to_out(f: UserFile) -> UserFileOut:
    return UserFileOut(
        id=f.id,
        user_id=f.user_id,
        original_name=f.original_name,
        mime_type=f.mime_type,
        size=f.size,
        uploaded_by_user_id=f.uploaded_by_user_id,
        created_at=f.created_at,
    )


def get_file_or_404(db: Session, user: User, file_id: int) -> UserFile:
    f = db.get(UserFile, file_id)
    if not f or f.user_id != user.id:
        raise HTTPException(status_code=404, detail="File not found")
    return f


@router.get("", response_model=list[UserFileOut])
def list_files(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    user = get_user_or_404(db, user_id)
    assert_can_view_user(current_user, user)
    return [to_out(f) for f in sorted(user.files, key=lambda f: f.id, reverse=True)]


@router.post("/upload", response_model=UploadSummary, status_code=201)
async def upload_files(
    user_id: int,
    request: Request,
    files: list[UploadFile] = File(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """All files are stored or none are: any oversize file rejects the batch."""
    user = get_user_or_404(db, user_id)
    assert_can_update_user(current_user, user)

    contents = []
    for upload in files:
        data = await upload.read()
        if len(data) > settings.MAX_UPLOAD_BYTES:
            raise HTTPException(status_code=413, detail=f"{upload.filename} exceeds the upload size limit")
        contents.append((upload, data))

    written: list[str] = []
    created: list[UserFile] = []
    try:
        for upload, data in contents:
            stored_name = save_upload(user.id, upload.filename or "upload", data)
            written.append(stored_name)
            f = UserFile(
                user_id=user.id,
                uploaded_by_user_id=current_user.id,
                original_name=upload.filename or "upload",
                stored_name=stored_name,
                mime_type=upload.content_type,
                size=len(data),
            )
            db.add(f)
            created.append(f)
        db.flush()

        log_activity(
            db=db,
            actor=current_user,
            action="uploaded_files",
            model_type="User",
            model_id=user.id,
            new_values={"files": [f.original_name for f in created]},
            request=request,
        )
        db.commit()
    except Exception:
        db.rollback()
        for stored_name in written:
            remove_stored(user.id, stored_name)
        raise

    return UploadSummary(
        total_attempted=len(files),
        successful=len(created),
        failed=len(files) - len(created),
        files=[to_out(f) for f in created],
    )


@router.delete("/bulk-delete")
def bulk_delete_files(
    user_id: int,
    payload: BulkDeleteRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Deletes every requested file or, if any id is unknown, none of them."""
    user = get_user_or_404(db, user_id)
    assert_can_update_user(current_user, user)

    files = db.query(UserFile).filter(UserFile.user_id == user.id, UserFile.id.in_(payload.file_ids)).all()
    missing = sorted(set(payload.file_ids) - {f.id for f in files})
    if missing:
        raise HTTPException(status_code=404, detail=f"File(s) not found: {missing}")

    stored = [f.stored_name for f in files]
    for f in files:
        db.delete(f)
    log_activity(
        db=db,
        actor=current_user,
        action="deleted_files",
        model_type="User",
        model_id=user.id,
        old_values={"files": [f.original_name for f in files]},
        request=request,
    )
    db.commit()

    for stored_name in stored:
        remove_stored(user.id, stored_name)
    return {"deleted": len(files)}


@router.delete("/{file_id}", status_code=204)
def delete_file(
    user_id: int,
    file_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    user = get_user_or_404(db, user_id)
    assert_can_update_user(current_user, user)
    f = get_file_or_404(db, user, file_id)

    stored_name = f.stored_name
    db.delete(f)
    log_activity(
        db=db,
        actor=current_user,
        action="deleted_file",
        model_type="User",
        model_id=user.id,
        old_values={"file": f.original_name},
        request=request,
    )
    db.commit()
    remove_stored(user.id, stored_name)


@router.get("/{file_id}/download")
def download_file(
    user_id: int,
    file_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    user = get_user_or_404(db, user_id)
    assert_can_view_user(current_user, user)
    f = get_file_or_404(db, user, file_id)

    path = stored_path(user.id, f.stored_name)
    if not path.exists():
        raise HTTPException(status_code=404, detail="File missing from storage")
    return FileResponse(path, filename=f.original_name, media_type=f.mime_type or "application/octet-stream")
