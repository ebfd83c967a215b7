"""Knowledge base files attached to forms.

Files count against the owner's storage quota. Only extracted text is kept;
it is appended to the form's prompt at generation time.
"""

import io
import logging
import uuid

from pypdf import PdfReader
from pypdf.errors import PyPdfError
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from smartresponse.core.config import settings
from smartresponse.core.errors import KnowledgeFileRejectedError, QuotaExceededError
from smartresponse.db.enums import QuotaResource
from smartresponse.db.models import Form, KnowledgeFile
from smartresponse.services import admission_service

logger = logging.getLogger(__name__)

PDF_MIME_TYPE = "application/pdf"
TEXT_MIME_TYPES = {
    "text/plain",
    "text/markdown",
    "text/csv",
    "application/json",
}
ALLOWED_MIME_TYPES = TEXT_MIME_TYPES | {PDF_MIME_TYPE}
ALLOWED_EXTENSIONS = {
    ".pdf": PDF_MIME_TYPE,
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".csv": "text/csv",
    ".json": "application/json",
}


def resolve_content_type(content_type: str | None, file_name: str) -> str | None:
    """Accept a file by MIME type, or by extension when browsers send a generic type."""
    if content_type in ALLOWED_MIME_TYPES:
        return content_type
    lowered = file_name.lower()
    for extension, mime_type in ALLOWED_EXTENSIONS.items():
        if lowered.endswith(extension):
            return mime_type
    return None


def extract_text(content: bytes, content_type: str) -> str:
    if content_type == PDF_MIME_TYPE:
        try:
            reader = PdfReader(io.BytesIO(content))
            pages = [page.extract_text() or "" for page in reader.pages]
        except PyPdfError as exc:
            raise KnowledgeFileRejectedError("Unable to read PDF file") from exc
        return "\n".join(pages).strip()
    return content.decode("utf-8", errors="replace").strip()


def count_form_files(db: Session, form_id: uuid.UUID) -> int:
    return db.scalar(
        select(func.count(KnowledgeFile.id)).where(KnowledgeFile.form_id == form_id)
    ) or 0


def add_knowledge_file(
    db: Session,
    form: Form,
    file_name: str,
    content_type: str | None,
    content: bytes,
) -> KnowledgeFile:
    """
    Validate and store a knowledge file for an owned form.

    Raises:
        KnowledgeFileRejectedError: too many files, too large, unsupported type
        QuotaExceededError: owner storage limit would be exceeded
    """
    file_size = len(content)

    if count_form_files(db, form.id) >= settings.MAX_FILES_PER_FORM:
        raise KnowledgeFileRejectedError(
            f"File limit reached ({settings.MAX_FILES_PER_FORM})"
        )
    if file_size > settings.MAX_FILE_SIZE_BYTES:
        raise KnowledgeFileRejectedError(
            f"File too large. Maximum size: {settings.MAX_FILE_SIZE_BYTES} bytes"
        )

    decision = admission_service.check_admission(
        db, form.owner_id, QuotaResource.STORAGE_BYTES, delta=file_size
    )
    if not decision.allowed:
        raise QuotaExceededError(
            QuotaResource.STORAGE_BYTES.value, decision.current, decision.limit
        )

    resolved_type = resolve_content_type(content_type, file_name)
    if not resolved_type:
        raise KnowledgeFileRejectedError(
            "Unsupported file type. Allowed: PDF, TXT, MD, CSV, JSON"
        )

    knowledge_file = KnowledgeFile(
        form_id=form.id,
        file_name=file_name,
        content_type=resolved_type,
        file_size=file_size,
        extracted_text=extract_text(content, resolved_type),
    )
    db.add(knowledge_file)
    db.commit()
    db.refresh(knowledge_file)
    logger.info(
        "Knowledge file %s added to form=%s (%s bytes)", knowledge_file.id, form.id, file_size
    )
    return knowledge_file


def list_knowledge_files(db: Session, form_id: uuid.UUID) -> list[KnowledgeFile]:
    return (
        db.query(KnowledgeFile)
        .filter(KnowledgeFile.form_id == form_id)
        .order_by(KnowledgeFile.created_at.desc())
        .all()
    )


def get_knowledge_texts(db: Session, form_id: uuid.UUID) -> list[str]:
    return [f.extracted_text for f in list_knowledge_files(db, form_id) if f.extracted_text]


def delete_knowledge_file(db: Session, form: Form, file_id: uuid.UUID) -> bool:
    knowledge_file = db.get(KnowledgeFile, file_id)
    if not knowledge_file or knowledge_file.form_id != form.id:
        return False
    db.delete(knowledge_file)
    db.commit()
    return True
