from __future__ import annotations
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


Role = Literal["system", "user", "assistant"]
CorrectionType = Literal["grammar", "spelling", "expression"]
Severity = Literal["error", "warning", "suggestion"]


class ChatMessage(BaseModel):
	role: Role
	content: str


class CorrectionPosition(BaseModel):
	# Half-open [start, end) character span into the analysed text
	start: int = Field(ge=0)
	end: int = Field(ge=0)

	@model_validator(mode="after")
	def _ordered(self) -> "CorrectionPosition":
		if self.start > self.end:
			raise ValueError("position.start must not exceed position.end")
		return self


class CorrectionItem(BaseModel):
	type: CorrectionType
	severity: Severity
	position: CorrectionPosition
	comment: str
	suggestion: Optional[str] = None

	def fits(self, text: str) -> bool:
		return self.position.end <= len(text)


class AnalyzedCorrection(CorrectionItem):
	id: str


class MaterialParams(BaseModel):
	"""Inputs for one material generation request.

	Accepts both ``knowledge_points`` and the SPA's ``knowledgePoints``.
	Type, subject and grade are free-form codes so unknown values reach the prompt
	untouched.
	"""

	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

	# Unknown type codes are passed through to the prompt unchanged
	type: str = Field(min_length=1)
	subject: str = Field(min_length=1)
	grade: str = Field(min_length=1)
	title: str = Field(min_length=1)
	difficulty: int = Field(default=3, ge=1, le=5)
	knowledge_points: List[str] = Field(min_length=1)
	requirements: Optional[str] = None


class MaterialResult(BaseModel):
	content: str
	metadata: Dict[str, Any]

	@property
	def ai_generated(self) -> bool:
		return bool(self.metadata.get("aiGenerated"))
