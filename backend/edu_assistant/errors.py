class AIServiceError(Exception):
	"""Base class for failures surfaced by the AI service.

	The message is always one of a few fixed, user-safe strings; the real
	cause is chained via ``__cause__`` and logged server-side.
	"""

	default_message = "AI service error"

	def __init__(self, message: str | None = None) -> None:
		super().__init__(message or self.default_message)
		self.message = message or self.default_message


class AIConfigurationError(AIServiceError):
	default_message = "AI service is not configured"


class AIGenerationError(AIServiceError):
	default_message = "Failed to generate content with AI"


class EmptyAIResponseError(AIGenerationError):
	"""The endpoint answered successfully but returned no choices."""


class AIResponseParseError(AIServiceError):
	default_message = "Failed to parse AI response"
