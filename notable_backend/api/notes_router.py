from typing import List

from fastapi import APIRouter, Depends, status

from notable_backend.api.deps import (
    get_current_session,
    get_note_mutator,
    get_note_repository,
)
from notable_backend.api.schemas import (
    AttachmentRequest,
    MessageResponse,
    NoteContentUpdate,
    NoteCreate,
    NoteOut,
    NoteStatusUpdate,
    TagRequest,
)
from notable_backend.notes.mutator import SetFieldMutator
from notable_backend.notes.repository import NoteRepository

# Every route here sits behind the session gate.
router = APIRouter(prefix="/notes", tags=["Notes"], dependencies=[Depends(get_current_session)])


#####################
# READS
#####################

# PUBLIC_INTERFACE
@router.get("", response_model=List[NoteOut], summary="List every note")
def list_notes(repo: NoteRepository = Depends(get_note_repository)):
    return repo.list_all()

# PUBLIC_INTERFACE
@router.get("/user/{user_id}", response_model=List[NoteOut], summary="List a user's notes")
def list_user_notes(user_id: int, repo: NoteRepository = Depends(get_note_repository)):
    return repo.list_for_user(user_id)

# PUBLIC_INTERFACE
@router.get("/user/{user_id}/favorites", response_model=List[NoteOut], summary="List a user's favorite notes")
def list_favorites(user_id: int, repo: NoteRepository = Depends(get_note_repository)):
    return repo.list_filtered(user_id, favorite=True)

# PUBLIC_INTERFACE
@router.get("/user/{user_id}/tags", response_model=List[NoteOut], summary="List a user's tagged notes")
def list_tagged(user_id: int, repo: NoteRepository = Depends(get_note_repository)):
    return repo.list_filtered(user_id, has_tags=True)

# PUBLIC_INTERFACE
@router.get("/user/{user_id}/untagged", response_model=List[NoteOut], summary="List a user's untagged notes")
def list_untagged(user_id: int, repo: NoteRepository = Depends(get_note_repository)):
    return repo.list_filtered(user_id, no_tags=True)

# PUBLIC_INTERFACE
@router.get("/user/{user_id}/trash", response_model=List[NoteOut], summary="List a user's trashed notes")
def list_trash(user_id: int, repo: NoteRepository = Depends(get_note_repository)):
    return repo.list_filtered(user_id, in_trash=True)

# PUBLIC_INTERFACE
@router.get("/user/{user_id}/all-tags", response_model=List[str], summary="Distinct tags across a user's notes")
def list_all_tags(user_id: int, repo: NoteRepository = Depends(get_note_repository)):
    return repo.distinct_tags(user_id)


#####################
# WRITES
#####################

# PUBLIC_INTERFACE
@router.post("/create-note", response_model=NoteOut, status_code=status.HTTP_201_CREATED, summary="Create a note")
def create_note(note: NoteCreate, repo: NoteRepository = Depends(get_note_repository)):
    """
    Create a note. Collections default to empty and every flag to false.
    """
    return repo.create(
        user_id=note.user_id,
        title=note.title,
        content=note.content,
        tags=note.tags,
        attachments=note.attachments,
        favorite=note.favorite,
        pinned=note.pinned,
        in_trash=note.in_trash,
    )

# PUBLIC_INTERFACE
@router.put("/update-note/{note_id}", response_model=NoteOut, summary="Replace a note's title and content")
def update_note(
    note_id: int,
    payload: NoteContentUpdate,
    mutator: SetFieldMutator = Depends(get_note_mutator),
    repo: NoteRepository = Depends(get_note_repository),
):
    mutator.update_content(note_id, payload.title, payload.content)
    return repo.get(note_id)

# PUBLIC_INTERFACE
@router.post("/create-tag", response_model=MessageResponse, status_code=status.HTTP_201_CREATED, summary="Add a tag")
def create_tag(payload: TagRequest, mutator: SetFieldMutator = Depends(get_note_mutator)):
    mutator.add_tag(payload.note_id, payload.tag)
    return {"message": "Tag added successfully"}

# PUBLIC_INTERFACE
@router.delete("/delete-tag", response_model=MessageResponse, summary="Remove a tag")
def delete_tag(payload: TagRequest, mutator: SetFieldMutator = Depends(get_note_mutator)):
    mutator.remove_tag(payload.note_id, payload.tag)
    return {"message": "Tag deleted successfully"}

# PUBLIC_INTERFACE
@router.post(
    "/create-attachment",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add an attachment",
)
def create_attachment(payload: AttachmentRequest, mutator: SetFieldMutator = Depends(get_note_mutator)):
    mutator.add_attachment(payload.note_id, payload.attachment)
    return {"message": "Attachment added successfully"}

# PUBLIC_INTERFACE
@router.delete("/delete-attachment", response_model=MessageResponse, summary="Remove an attachment")
def delete_attachment(payload: AttachmentRequest, mutator: SetFieldMutator = Depends(get_note_mutator)):
    mutator.remove_attachment(payload.note_id, payload.attachment)
    return {"message": "Attachment deleted successfully"}

# PUBLIC_INTERFACE
@router.put("/update-status/{note_id}", response_model=NoteOut, summary="Set favorite, pinned or inTrash")
def update_status(
    note_id: int,
    payload: NoteStatusUpdate,
    mutator: SetFieldMutator = Depends(get_note_mutator),
    repo: NoteRepository = Depends(get_note_repository),
):
    """
    Each flag present in the body is written on its own; absent flags keep their value.
    """
    mutator.update_status(note_id, favorite=payload.favorite, pinned=payload.pinned, in_trash=payload.in_trash)
    return repo.get(note_id)

# PUBLIC_INTERFACE
@router.delete("/delete-note/{note_id}", response_model=MessageResponse, summary="Permanently delete a note")
def delete_note(note_id: int, repo: NoteRepository = Depends(get_note_repository)):
    repo.delete(note_id)
    return {"message": "Note deleted permanently"}
