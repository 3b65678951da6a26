from __future__ import annotations
import asyncio
import json
import logging
import re
from functools import lru_cache
from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import BaseModel, ConfigDict

from .ai_client import ChatCompletionClient
from .errors import AIConfigurationError, AIGenerationError, AIResponseParseError, EmptyAIResponseError
from .retry import Sleep, exponential_backoff
from .schemas import ChatMessage, MaterialParams
from .settings import Settings, settings

logger = logging.getLogger(__name__)


class AIConfig(BaseModel):
	"""Read-only AI configuration, built once at startup and injected."""

	model_config = ConfigDict(frozen=True)

	api_key: str = ""
	endpoint: str
	model: str
	temperature: float = 0.7
	max_tokens: int = 2000
	timeout_ms: int = 30000
	max_retries: int = 3
	retry_initial_delay: int = 1000
	retry_max_delay: Optional[int] = None

	@classmethod
	def from_settings(cls, s: Settings) -> "AIConfig":
		return cls(
			api_key=s.ai_api_key,
			endpoint=s.ai_endpoint,
			model=s.ai_model,
			temperature=s.ai_temperature,
			max_tokens=s.ai_max_tokens,
			timeout_ms=s.ai_timeout,
			max_retries=s.ai_max_retries,
			retry_initial_delay=s.ai_retry_initial_delay,
			retry_max_delay=s.ai_retry_max_delay,
		)


COMMUNICATION_PERSONA = (
	"You are a professional education communication advisor. You help teachers communicate "
	"effectively with students, parents and colleagues."
)
PROOFREADER_PERSONA = (
	"You are a professional proofreader who is skilled at finding grammar errors, spelling "
	"mistakes and awkward expressions in text."
)
MATERIAL_PERSONA = (
	"You are a professional education content creator who produces high quality teaching "
	"materials tailored to a teacher's needs."
)

SUBJECT_NAMES: Dict[str, str] = {
	"chinese": "Chinese Language",
	"math": "Mathematics",
	"english": "English",
	"physics": "Physics",
	"chemistry": "Chemistry",
	"biology": "Biology",
	"history": "History",
	"geography": "Geography",
	"politics": "Politics",
}

GRADE_NAMES: Dict[str, str] = {
	"primary1": "Primary School Grade 1",
	"primary2": "Primary School Grade 2",
	"primary3": "Primary School Grade 3",
	"primary4": "Primary School Grade 4",
	"primary5": "Primary School Grade 5",
	"primary6": "Primary School Grade 6",
	"junior1": "Junior High Grade 1",
	"junior2": "Junior High Grade 2",
	"junior3": "Junior High Grade 3",
	"senior1": "Senior High Grade 1",
	"senior2": "Senior High Grade 2",
	"senior3": "Senior High Grade 3",
}

MATERIAL_TYPE_NAMES: Dict[str, str] = {
	"lesson": "lesson plan",
	"exercise": "exercise set",
	"exam": "quiz",
	"handout": "handout",
}

MATERIAL_TYPE_INSTRUCTIONS: Dict[str, str] = {
	"lesson": (
		"Create a complete lesson plan including teaching objectives, key and difficult points, "
		"the teaching process (introduction, new content, consolidation practice, summary), "
		"a blackboard design and a post-lesson reflection."
	),
	"exercise": (
		"Create a set of exercises including multiple-choice, fill-in-the-blank and open-ended "
		"questions, and provide answers with explanations."
	),
	"exam": (
		"Create a quiz including multiple-choice, fill-in-the-blank and open-ended questions, "
		"and provide answers and a marking scheme."
	),
	"handout": (
		"Create a handout including an overview of the knowledge points, explanations of key "
		"concepts, worked examples and questions for reflection."
	),
}


def build_communication_prompt(message: str) -> str:
	return (
		"As a professional education communication assistant, give professional and effective "
		"communication advice for the following educational situation or question:\n\n"
		f"User question: {message}\n\n"
		"Provide concrete, practical communication strategies, suggested phrasing or solutions "
		"that help the teacher handle this situation. The answer should include:\n"
		"1. A brief analysis of the situation\n"
		"2. Concrete communication strategies and advice\n"
		"3. Example phrasing that can be used directly (if applicable)\n"
		"4. Communication techniques to keep in mind and pitfalls to avoid\n\n"
		"Make sure the answer is professional and constructive, grounded in educational "
		"psychology and the principles of effective communication."
	)


def build_analysis_prompt(text: str) -> str:
	return (
		"Analyse the following text, find grammar errors, spelling mistakes and awkward "
		"expressions, and suggest corrections.\n\n"
		f'Text:\n"""\n{text}\n"""\n\n'
		"Return the analysis in the following JSON format:\n"
		"[\n"
		"  {\n"
		'    "type": "grammar|spelling|expression",\n'
		'    "severity": "error|warning|suggestion",\n'
		'    "position": {\n'
		'      "start": 0,\n'
		'      "end": 0\n'
		"    },\n"
		'    "comment": "description of the problem",\n'
		'    "suggestion": "suggested replacement text"\n'
		"  }\n"
		"]\n\n"
		"Notes:\n"
		"1. position.start and position.end are character offsets into the original text, counted from 0\n"
		"2. type is the kind of issue: grammar, spelling or expression\n"
		"3. severity is how serious it is: error, warning or suggestion\n"
		"4. Return ONLY the JSON array, without any other text"
	)


def build_material_prompt(params: MaterialParams) -> str:
	subject_name = SUBJECT_NAMES.get(params.subject, params.subject)
	grade_name = GRADE_NAMES.get(params.grade, params.grade)
	type_name = MATERIAL_TYPE_NAMES.get(params.type, params.type)

	lines = [f'Create a {type_name} for a {grade_name} {subject_name} class titled "{params.title}".', ""]
	lines.append("Knowledge points to cover:")
	for i, point in enumerate(params.knowledge_points, start=1):
		lines.append(f"{i}. {point}")
	lines.append("")
	lines.append(f"Difficulty level: {params.difficulty}/5 (1 is the easiest, 5 the hardest)")
	if params.requirements:
		lines.append("")
		lines.append("Special requirements:")
		lines.append(params.requirements)
	instruction = MATERIAL_TYPE_INSTRUCTIONS.get(params.type)
	if instruction:
		lines.append("")
		lines.append(instruction)
	return "\n".join(lines)


_FENCE_RE = re.compile(r"^```(?:json)?\s*([\s\S]*?)\s*```$", re.IGNORECASE)


def parse_correction_payload(raw: str) -> List[Any]:
	"""Decode the proofreader's answer into a list; anything else is a parse failure."""
	text = raw.strip()
	fenced = _FENCE_RE.match(text)
	if fenced:
		text = fenced.group(1)
	try:
		data = json.loads(text)
	except (TypeError, ValueError) as exc:
		logger.error("Failed to parse AI response: %s", exc)
		raise AIResponseParseError() from exc
	if not isinstance(data, list):
		logger.error("AI analysis response is %s, expected a JSON array", type(data).__name__)
		raise AIResponseParseError()
	return data


MessageLike = Union[ChatMessage, Dict[str, Any]]


class AIService:
	"""Single point of contact with the chat-completion endpoint."""

	def __init__(self, config: AIConfig, client: Any = None, *, sleep: Sleep = asyncio.sleep) -> None:
		self.config = config
		self._client = client
		self._sleep = sleep

	@property
	def configured(self) -> bool:
		return bool(self.config.api_key)

	def _get_client(self) -> Any:
		if self._client is None:
			self._client = ChatCompletionClient(
				self.config.api_key,
				self.config.endpoint,
				timeout_ms=self.config.timeout_ms,
			)
		return self._client

	async def aclose(self) -> None:
		if isinstance(self._client, ChatCompletionClient):
			await self._client.aclose()

	async def _complete(
		self,
		messages: List[ChatMessage],
		*,
		model: str,
		temperature: float,
		max_tokens: int,
		failure_message: Optional[str] = None,
	) -> str:
		payload = [m.model_dump() for m in messages]
		try:
			client = self._get_client()
		except AIConfigurationError as exc:
			logger.error("AI client is not configured: %s", exc)
			raise AIGenerationError(failure_message) from exc
		try:
			async def _call() -> Dict[str, Any]:
				return await client.create_chat_completion(
					model=model,
					messages=payload,
					temperature=temperature,
					max_tokens=max_tokens,
				)

			response = await exponential_backoff(
				_call,
				self.config.max_retries,
				self.config.retry_initial_delay,
				max_delay=self.config.retry_max_delay,
				sleep=self._sleep,
			)
		except Exception as exc:
			logger.exception("AI API error after %d retries", self.config.max_retries)
			raise AIGenerationError(failure_message) from exc

		choices = response.get("choices") if isinstance(response, dict) else None
		if not isinstance(choices, list) or not choices:
			logger.error("AI response is empty or invalid: %r", response)
			raise EmptyAIResponseError(failure_message)
		first = choices[0] if isinstance(choices[0], dict) else {}
		content = (first.get("message") or {}).get("content")
		if not isinstance(content, str):
			logger.error("AI response choice has no text content: %r", choices[0])
			raise EmptyAIResponseError(failure_message)
		logger.debug("AI response: %s", content)
		return content

	async def generate_content(
		self,
		messages: Iterable[MessageLike],
		*,
		model: Optional[str] = None,
		temperature: Optional[float] = None,
		max_tokens: Optional[int] = None,
	) -> str:
		validated = [ChatMessage.model_validate(m) for m in messages]
		return await self._complete(
			validated,
			model=model if model is not None else self.config.model,
			temperature=temperature if temperature is not None else self.config.temperature,
			max_tokens=max_tokens if max_tokens is not None else self.config.max_tokens,
		)

	async def generate_communication_response(self, message: str) -> str:
		messages = [
			ChatMessage(role="system", content=COMMUNICATION_PERSONA),
			ChatMessage(role="user", content=build_communication_prompt(message)),
		]
		return await self._complete(
			messages,
			model=self.config.model,
			temperature=0.7,
			max_tokens=2000,
			failure_message="Failed to generate communication response with AI",
		)

	async def analyze_text(self, text: str) -> List[Any]:
		messages = [
			ChatMessage(role="system", content=PROOFREADER_PERSONA),
			ChatMessage(role="user", content=build_analysis_prompt(text)),
		]
		raw = await self.generate_content(messages, temperature=0.3)
		# Parsing happens after a successful round-trip and is never retried
		return parse_correction_payload(raw)

	async def generate_material(self, params: MaterialParams) -> str:
		messages = [
			ChatMessage(role="system", content=MATERIAL_PERSONA),
			ChatMessage(role="user", content=build_material_prompt(params)),
		]
		return await self.generate_content(messages, temperature=0.7, max_tokens=2000)


@lru_cache
def get_ai_service() -> AIService:
	return AIService(AIConfig.from_settings(settings))
