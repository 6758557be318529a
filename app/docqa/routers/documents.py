"""
Router for document endpoints.

Handles:
- Uploading, listing, fetching and deleting documents
- Asking questions answered from a document's extracted text
"""

import logging
from pathlib import Path
from typing import Annotated

from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    HTTPException,
    Query,
    Response,
    UploadFile,
    status,
)
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from ..database import get_db
from ..models import (
    AskRequest,
    AskResponse,
    DocumentResponse,
    NoText,
    NoTextReason,
)
from ..models_db import Document
from ..services.answer_service import AnswerService, get_answer_service
from ..services.extraction import (
    TextExtractionService,
    UnreadableFileError,
    get_extraction_service,
)
from ..services.storage import FileStorage, StorageError, get_file_storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["documents"])


def _get_document_or_404(db: Session, document_id: int) -> Document:
    document = db.get(Document, document_id)
    if document is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Document {document_id} not found",
        )
    return document


@router.post("", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
async def upload_document(
    file: Annotated[UploadFile, File(description="PDF or DOCX file")],
    title: Annotated[str | None, Form()] = None,
    user_id: Annotated[int | None, Form()] = None,
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_file_storage),
) -> DocumentResponse:
    """
    Upload a document.

    The file is stored on disk and a document record is created. Text is
    extracted lazily when a question is asked.
    """
    if not file.filename:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No filename provided",
        )

    try:
        content = await file.read()
    finally:
        await file.close()

    if not content:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Empty file provided",
        )

    try:
        path = storage.save(file.filename, content)
    except StorageError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e),
        )

    document = Document(
        title=(title or "").strip() or file.filename,
        file_path=str(path),
        original_filename=file.filename,
        size_bytes=len(content),
        user_id=user_id,
    )
    db.add(document)
    db.commit()
    db.refresh(document)

    logger.info("Created document %d for %s", document.id, file.filename)
    return DocumentResponse.model_validate(document)


@router.get("", response_model=list[DocumentResponse])
async def list_documents(
    user_id: int | None = None,
    skip: Annotated[int, Query(ge=0)] = 0,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
    db: Session = Depends(get_db),
) -> list[DocumentResponse]:
    """List documents, newest first, optionally only those of one user."""
    query = db.query(Document)
    if user_id is not None:
        query = query.filter(Document.user_id == user_id)
    documents = (
        query.order_by(Document.uploaded_at.desc(), Document.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )
    return [DocumentResponse.model_validate(d) for d in documents]


@router.get("/{document_id}", response_model=DocumentResponse)
async def get_document(
    document_id: int,
    db: Session = Depends(get_db),
) -> DocumentResponse:
    """Get a single document."""
    return DocumentResponse.model_validate(_get_document_or_404(db, document_id))


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    document_id: int,
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_file_storage),
) -> Response:
    """Delete a document and its stored file."""
    document = _get_document_or_404(db, document_id)
    file_path = document.file_path

    db.delete(document)
    db.commit()
    storage.delete(file_path)

    logger.info("Deleted document %d", document_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{document_id}/ask", response_model=AskResponse)
async def ask_question(
    document_id: int,
    request: AskRequest,
    db: Session = Depends(get_db),
    extraction_service: TextExtractionService = Depends(get_extraction_service),
    answer_service: AnswerService = Depends(get_answer_service),
) -> AskResponse:
    """
    Answer a question from the document's text.

    Extraction outcomes map to 415 (unsupported format) and 422 (no text,
    e.g. scanned PDFs). Answer service failures are handled by the
    application's exception handlers.
    """
    question = request.question.strip()
    if not question:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Question is required",
        )

    document = _get_document_or_404(db, document_id)
    path = Path(document.file_path)

    if not path.is_file():
        logger.error("File for document %d is missing: %s", document_id, path)
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Document file not found",
        )
    if path.stat().st_size == 0:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Document file is empty",
        )

    try:
        extraction = await run_in_threadpool(extraction_service.extract_text, path)
    except UnreadableFileError as e:
        logger.error("Text extraction failed for document %d: %s", document_id, e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Unable to extract text",
        )

    if isinstance(extraction, NoText):
        status_code = (
            status.HTTP_415_UNSUPPORTED_MEDIA_TYPE
            if extraction.reason == NoTextReason.UNSUPPORTED_FORMAT
            else status.HTTP_422_UNPROCESSABLE_ENTITY
        )
        raise HTTPException(status_code=status_code, detail=extraction.message)

    result = await answer_service.answer(extraction.text, question)

    return AskResponse(
        document_id=document.id,
        question=question,
        answer=result.answer,
        truncated=result.truncated,
        strategy=extraction.strategy,
    )
