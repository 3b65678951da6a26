from __future__ import annotations
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..ai_service import AIService, get_ai_service
from ..correction_service import analyze_text
from ..db import get_db
from ..models import Correction, Document, User
from ..schemas import CorrectionPosition, CorrectionType, Severity
from .auth import get_current_user


router = APIRouter(prefix="/api/correction", tags=["correction"])

logger = logging.getLogger(__name__)

DOCUMENT_STATUSES = ("draft", "published", "archived")


class DocumentCreate(BaseModel):
	title: str = Field(min_length=1, max_length=256)
	content: str = ""


class DocumentUpdate(BaseModel):
	title: Optional[str] = Field(default=None, min_length=1, max_length=256)
	content: Optional[str] = None
	status: Optional[str] = None


class CorrectionCreate(BaseModel):
	type: CorrectionType
	severity: Severity = "suggestion"
	position: CorrectionPosition
	comment: str
	suggestion: Optional[str] = None


class CorrectionUpdate(BaseModel):
	type: Optional[CorrectionType] = None
	severity: Optional[Severity] = None
	position: Optional[CorrectionPosition] = None
	comment: Optional[str] = None
	suggestion: Optional[str] = None
	applied: Optional[bool] = None


class AnalyzeRequest(BaseModel):
	text: str = Field(min_length=1)


def _get_document(db: Session, user: User, document_id: str) -> Document:
	document = (
		db.query(Document)
		.filter(Document.id == document_id, Document.user_id == user.id, Document.type == "correction")
		.first()
	)
	if not document:
		raise HTTPException(status_code=404, detail="Document not found")
	return document


def _get_correction(db: Session, document: Document, correction_id: str) -> Correction:
	correction = (
		db.query(Correction)
		.filter(Correction.id == correction_id, Correction.document_id == document.id)
		.first()
	)
	if not correction:
		raise HTTPException(status_code=404, detail="Correction not found")
	return correction


def _check_span(document: Document, position: CorrectionPosition) -> None:
	if position.end > len(document.content):
		raise HTTPException(status_code=400, detail="Correction position is outside the document text")



def _drop_stale_corrections(document: Document) -> None:
	# Spans must stay inside the text after an edit
	length = len(document.content)
	for correction in list(document.corrections):
		if correction.end > length:
			logger.warning(
				"Removing correction %s with span %d-%d outside edited document %s of length %d",
				correction.id, correction.start, correction.end, document.id, length,
			)
			# delete-orphan cascade removes the row on commit
			document.corrections.remove(correction)


@router.get("/documents")
async def list_documents(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	documents = (
		db.query(Document)
		.filter(Document.user_id == user.id, Document.type == "correction")
		.order_by(Document.updated_at.desc())
		.all()
	)
	return {"documents": [d.to_dict() for d in documents]}


@router.get("/documents/{document_id}")
async def get_document(document_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	document = _get_document(db, user, document_id)
	return {"document": document.to_dict(include_corrections=True)}


@router.post("/documents", status_code=201)
async def create_document(req: DocumentCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	document = Document(title=req.title, content=req.content, user_id=user.id, type="correction", status="draft")
	db.add(document)
	db.commit()
	db.refresh(document)
	return {"message": "Document created successfully", "document": document.to_dict()}


@router.put("/documents/{document_id}")
async def update_document(document_id: str, req: DocumentUpdate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	document = _get_document(db, user, document_id)
	if req.status is not None and req.status not in DOCUMENT_STATUSES:
		raise HTTPException(status_code=400, detail=f"status must be one of {list(DOCUMENT_STATUSES)}")
	if req.title is not None:
		document.title = req.title
	if req.content is not None:
		document.content = req.content
		_drop_stale_corrections(document)
	if req.status is not None:
		document.status = req.status
	db.commit()
	db.refresh(document)
	return {"message": "Document updated successfully", "document": document.to_dict()}


@router.delete("/documents/{document_id}")
async def delete_document(document_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	document = _get_document(db, user, document_id)
	# Corrections go with the document (delete-orphan cascade)
	db.delete(document)
	db.commit()
	return {"message": "Document deleted successfully"}


@router.post("/documents/{document_id}/corrections", status_code=201)
async def create_correction(document_id: str, req: CorrectionCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	document = _get_document(db, user, document_id)
	_check_span(document, req.position)
	correction = Correction(
		document_id=document.id,
		type=req.type,
		severity=req.severity,
		start=req.position.start,
		end=req.position.end,
		comment=req.comment,
		suggestion=req.suggestion,
		applied=False,
	)
	db.add(correction)
	db.commit()
	db.refresh(correction)
	return {"message": "Correction created successfully", "correction": correction.to_dict()}


@router.put("/documents/{document_id}/corrections/{correction_id}")
async def update_correction(
	document_id: str,
	correction_id: str,
	req: CorrectionUpdate,
	user: User = Depends(get_current_user),
	db: Session = Depends(get_db),
):
	document = _get_document(db, user, document_id)
	correction = _get_correction(db, document, correction_id)
	if req.type is not None:
		correction.type = req.type
	if req.severity is not None:
		correction.severity = req.severity
	if req.position is not None:
		_check_span(document, req.position)
		correction.start = req.position.start
		correction.end = req.position.end
	if req.comment is not None:
		correction.comment = req.comment
	if req.suggestion is not None:
		correction.suggestion = req.suggestion
	if req.applied is not None:
		correction.applied = req.applied
	db.commit()
	db.refresh(correction)
	return {"message": "Correction updated successfully", "correction": correction.to_dict()}


@router.delete("/documents/{document_id}/corrections/{correction_id}")
async def delete_correction(document_id: str, correction_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	document = _get_document(db, user, document_id)
	correction = _get_correction(db, document, correction_id)
	db.delete(correction)
	db.commit()
	return {"message": "Correction deleted successfully"}


@router.post("/analyze")
async def analyze(req: AnalyzeRequest, user: User = Depends(get_current_user), ai: AIService = Depends(get_ai_service)):
	corrections = await analyze_text(req.text, ai)
	return {"corrections": [c.model_dump() for c in corrections]}
