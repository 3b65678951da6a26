import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .ai_service import get_ai_service
from .db import init_db
from .errors import AIServiceError
from .middleware import RequestLoggingMiddleware
from .settings import settings, config_warnings
from .routers import auth
from .routers import chat
from .routers import communication
from .routers import correction
from .routers import material

logging.basicConfig(
	level=getattr(logging, settings.log_level.upper(), logging.INFO),
	format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logging.getLogger("httpx").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)

app = FastAPI(title="Education Assistant API")
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
	CORSMiddleware,
	allow_origins=settings.cors_origin_list(),
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)
app.include_router(auth.router)
app.include_router(correction.router)
app.include_router(material.router)
app.include_router(communication.router)
app.include_router(communication.ai_router)
app.include_router(chat.router)


@app.exception_handler(AIServiceError)
async def ai_service_error_handler(request: Request, exc: AIServiceError):
	# Only the fixed message leaves the server; the cause is already logged
	logger.error("AI service failure on %s %s: %s", request.method, request.url.path, type(exc).__name__)
	return JSONResponse(status_code=502, content={"detail": exc.message})


@app.get("/api/health")
def health():
	return {"status": "ok", "ai_configured": settings.ai_configured}


@app.on_event("startup")
async def startup_event():
	for warning in config_warnings(settings):
		logger.warning(warning)
	# Initialize DB schema
	init_db()


@app.on_event("shutdown")
async def shutdown_event():
	if get_ai_service.cache_info().currsize:
		await get_ai_service().aclose()
