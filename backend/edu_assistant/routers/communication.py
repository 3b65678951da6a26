from __future__ import annotations
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..ai_service import AIService, get_ai_service
from ..db import get_db
from ..models import Document, User
from .auth import get_current_user


router = APIRouter(prefix="/api/communication", tags=["communication"])
# The SPA posts advice requests to /api/ai/communication
ai_router = APIRouter(prefix="/api/ai", tags=["communication"])

logger = logging.getLogger(__name__)


class MessageRequest(BaseModel):
	message: str = Field(min_length=1)


class SaveConversationRequest(BaseModel):
	title: str = Field(min_length=1, max_length=256)
	messages: List[Dict[str, Any]] = Field(min_length=1)


def _get_conversation(db: Session, user: User, conversation_id: str) -> Document:
	conversation = (
		db.query(Document)
		.filter(Document.id == conversation_id, Document.user_id == user.id, Document.type == "communication")
		.first()
	)
	if not conversation:
		raise HTTPException(status_code=404, detail="Conversation not found")
	return conversation


async def _advise(req: MessageRequest, ai: AIService) -> Dict[str, Any]:
	response = await ai.generate_communication_response(req.message)
	return {"status": "success", "data": response}


@router.post("/message")
async def message(req: MessageRequest, user: User = Depends(get_current_user), ai: AIService = Depends(get_ai_service)):
	return await _advise(req, ai)


@ai_router.post("/communication")
async def ai_communication(req: MessageRequest, user: User = Depends(get_current_user), ai: AIService = Depends(get_ai_service)):
	return await _advise(req, ai)


@router.get("/history")
async def history(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	conversations = (
		db.query(Document)
		.filter(Document.user_id == user.id, Document.type == "communication")
		.order_by(Document.updated_at.desc())
		.all()
	)
	return {"conversations": [c.to_dict() for c in conversations]}


@router.post("/save", status_code=201)
async def save(req: SaveConversationRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	conversation = Document(
		title=req.title,
		content=json.dumps(req.messages, ensure_ascii=False),
		user_id=user.id,
		type="communication",
		status="saved",
	)
	conversation.meta = {
		"messageCount": len(req.messages),
		"lastMessage": datetime.now(timezone.utc).isoformat(),
	}
	db.add(conversation)
	db.commit()
	db.refresh(conversation)
	return {"message": "Conversation saved successfully", "conversation": conversation.to_dict()}


@router.get("/history/{conversation_id}")
async def get_conversation(conversation_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	conversation = _get_conversation(db, user, conversation_id)
	messages: List[Any] = []
	try:
		messages = json.loads(conversation.content)
	except ValueError:
		logger.warning("Conversation %s has undecodable content", conversation.id)
	return {"conversation": {**conversation.to_dict(), "messages": messages}}


@router.delete("/history/{conversation_id}")
async def delete_conversation(conversation_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	conversation = _get_conversation(db, user, conversation_id)
	db.delete(conversation)
	db.commit()
	return {"message": "Conversation deleted successfully"}


@router.delete("/history")
async def clear_history(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	db.query(Document).filter(Document.user_id == user.id, Document.type == "communication").delete()
	db.commit()
	return {"message": "All conversations cleared successfully"}
