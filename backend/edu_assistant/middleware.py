import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

logger = logging.getLogger("edu_assistant.requests")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
	"""Log method, path, status and elapsed time of every request"""
	async def dispatch(self, request: Request, call_next):
		started = time.perf_counter()
		try:
			response = await call_next(request)
		except Exception:
			logger.exception("%s %s failed", request.method, request.url.path)
			raise
		elapsed_ms = (time.perf_counter() - started) * 1000
		logger.info("%s %s -> %d (%.1f ms)", request.method, request.url.path, response.status_code, elapsed_ms)
		return response
