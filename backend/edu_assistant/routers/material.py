from __future__ import annotations
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..ai_service import AIService, get_ai_service
from ..db import get_db
from ..material_service import generate_material
from ..models import Document, User
from ..schemas import MaterialParams
from .auth import get_current_user


router = APIRouter(prefix="/api/material", tags=["material"])


class SaveMaterialRequest(BaseModel):
	type: str = Field(min_length=1)
	subject: str = Field(min_length=1)
	grade: str = Field(min_length=1)
	title: str = Field(min_length=1, max_length=256)
	content: str = Field(min_length=1)
	metadata: Optional[Dict[str, Any]] = None


def _get_material(db: Session, user: User, material_id: str) -> Document:
	material = (
		db.query(Document)
		.filter(Document.id == material_id, Document.user_id == user.id, Document.type == "material")
		.first()
	)
	if not material:
		raise HTTPException(status_code=404, detail="Material not found")
	return material


@router.post("/generate")
async def generate(params: MaterialParams, user: User = Depends(get_current_user), ai: AIService = Depends(get_ai_service)):
	result = await generate_material(params, ai)
	return result.model_dump()


@router.get("/history")
async def history(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	materials = (
		db.query(Document)
		.filter(Document.user_id == user.id, Document.type == "material")
		.order_by(Document.updated_at.desc())
		.all()
	)
	return {"materials": [m.to_dict() for m in materials]}


@router.get("/history/{material_id}")
async def get_material(material_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	return {"material": _get_material(db, user, material_id).to_dict()}


@router.post("/save", status_code=201)
async def save(req: SaveMaterialRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	material = Document(
		title=req.title,
		content=req.content,
		user_id=user.id,
		type="material",
		status="published",
	)
	material.meta = {"subject": req.subject, "grade": req.grade, "materialType": req.type, **(req.metadata or {})}
	db.add(material)
	db.commit()
	db.refresh(material)
	return {"message": "Material saved successfully", "material": material.to_dict()}


@router.delete("/history/{material_id}")
async def delete_material(material_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	material = _get_material(db, user, material_id)
	db.delete(material)
	db.commit()
	return {"message": "Material deleted successfully"}
