from __future__ import annotations
import time
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..ai_service import AIService, get_ai_service
from ..models import User
from ..schemas import ChatMessage
from .auth import get_current_user

router = APIRouter(prefix="/api/chat", tags=["chat"])


class CompletionRequest(BaseModel):
	messages: List[ChatMessage] = Field(min_length=1)
	model: Optional[str] = None
	temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0)
	max_tokens: Optional[int] = Field(default=None, gt=0)


@router.post("/completions")
async def completions(req: CompletionRequest, user: User = Depends(get_current_user), ai: AIService = Depends(get_ai_service)):
	content = await ai.generate_content(
		req.messages,
		model=req.model,
		temperature=req.temperature,
		max_tokens=req.max_tokens,
	)
	return {
		"id": f"chatcmpl-{uuid.uuid4().hex}",
		"object": "chat.completion",
		"created": int(time.time()),
		"model": req.model or ai.config.model,
		"choices": [
			{
				"index": 0,
				"message": {"role": "assistant", "content": content},
				"finish_reason": "stop",
			}
		],
	}
