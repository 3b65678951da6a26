from __future__ import annotations
import logging
import uuid
from typing import List

from pydantic import ValidationError

from .ai_service import AIService
from .schemas import AnalyzedCorrection, CorrectionItem

logger = logging.getLogger(__name__)


def new_correction_id() -> str:
	return f"ai-correction-{uuid.uuid4().hex}"


async def analyze_text(text: str, ai: AIService) -> List[AnalyzedCorrection]:
	"""Ask the model for corrections and keep only items that can be applied to ``text``."""
	raw_items = await ai.analyze_text(text)
	corrections: List[AnalyzedCorrection] = []
	for index, raw in enumerate(raw_items):
		try:
			item = CorrectionItem.model_validate(raw)
		except ValidationError as exc:
			logger.warning("Discarding malformed correction #%d: %s", index, exc.errors())
			continue
		if not item.fits(text):
			logger.warning(
				"Discarding correction #%d with span %d-%d outside text of length %d",
				index, item.position.start, item.position.end, len(text),
			)
			continue
		corrections.append(AnalyzedCorrection(id=new_correction_id(), **item.model_dump()))
	return corrections
