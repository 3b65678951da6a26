import os

# Keep the module-level engine away from any developer database
os.environ["DATABASE_URL"] = "sqlite://"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from edu_assistant.ai_service import AIConfig, AIService, get_ai_service
from edu_assistant.db import Base, get_db, init_db
from edu_assistant.main import app


class FakeChatClient:
	"""Stands in for ChatCompletionClient; replays scripted outcomes in order."""

	def __init__(self, *outcomes):
		self.outcomes = list(outcomes)
		self.calls = []

	async def create_chat_completion(self, **kwargs):
		self.calls.append(kwargs)
		outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
		if isinstance(outcome, Exception):
			raise outcome
		return outcome


class FakeSleep:
	def __init__(self):
		self.delays = []

	async def __call__(self, seconds):
		self.delays.append(seconds)


def completion(content):
	return {"choices": [{"index": 0, "message": {"role": "assistant", "content": content}}]}


def make_config(**overrides):
	values = {"api_key": "test-key", "endpoint": "https://llm.test/v1", "model": "test-model"}
	values.update(overrides)
	return AIConfig(**values)


@pytest.fixture
def fake_sleep():
	return FakeSleep()


@pytest.fixture
def make_service(fake_sleep):
	def _make(*outcomes, **config):
		client = FakeChatClient(*outcomes)
		return AIService(make_config(**config), client, sleep=fake_sleep), client
	return _make


@pytest.fixture
def db_session_factory():
	engine = create_engine(
		"sqlite://",
		connect_args={"check_same_thread": False},
		poolclass=StaticPool,
	)
	init_db(engine)
	factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
	yield factory
	Base.metadata.drop_all(bind=engine)
	engine.dispose()


@pytest.fixture
def ai_stub(make_service):
	service, _ = make_service(completion("stub answer"))
	return service


@pytest.fixture
def client(db_session_factory, ai_stub):
	def _get_db():
		db = db_session_factory()
		try:
			yield db
		finally:
			db.close()

	app.dependency_overrides[get_db] = _get_db
	app.dependency_overrides[get_ai_service] = lambda: ai_stub
	yield TestClient(app)
	app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(client):
	resp = client.post(
		"/api/auth/register",
		json={"name": "Ms Teacher", "email": "teacher@example.com", "password": "secret123"},
	)
	assert resp.status_code == 201
	return {"Authorization": f"Bearer {resp.json()['token']}"}
