import json

from edu_assistant.ai_service import AIService, get_ai_service
from edu_assistant.main import app

from conftest import FakeChatClient, FakeSleep, completion, make_config


def _use_ai(*outcomes, **config):
	service = AIService(make_config(**config), FakeChatClient(*outcomes), sleep=FakeSleep())
	app.dependency_overrides[get_ai_service] = lambda: service
	return service


class TestAuth:
	def test_register_login_profile(self, client):
		resp = client.post(
			"/api/auth/register",
			json={"name": "Li Wei", "email": "Li@Example.com", "password": "secret123"},
		)
		assert resp.status_code == 201
		body = resp.json()
		assert body["user"]["email"] == "li@example.com"
		assert "password_hash" not in body["user"]

		resp = client.post("/api/auth/login", json={"email": "li@example.com", "password": "secret123"})
		assert resp.status_code == 200
		token = resp.json()["token"]
		assert resp.json()["user"]["last_login"] is not None

		resp = client.get("/api/auth/profile", headers={"Authorization": f"Bearer {token}"})
		assert resp.status_code == 200
		assert resp.json()["user"]["name"] == "Li Wei"

	def test_duplicate_email_conflicts(self, client, auth_headers):
		resp = client.post(
			"/api/auth/register",
			json={"name": "Other", "email": "teacher@example.com", "password": "secret123"},
		)
		assert resp.status_code == 409

	def test_bad_credentials(self, client, auth_headers):
		resp = client.post("/api/auth/login", json={"email": "teacher@example.com", "password": "wrong"})
		assert resp.status_code == 401

	def test_oauth2_token_form(self, client, auth_headers):
		resp = client.post("/api/auth/token", data={"username": "teacher@example.com", "password": "secret123"})
		assert resp.status_code == 200
		assert resp.json()["token_type"] == "bearer"

	def test_requires_token(self, client):
		assert client.get("/api/auth/profile").status_code == 401
		bad = {"Authorization": "Bearer not-a-jwt"}
		assert client.get("/api/auth/profile", headers=bad).status_code == 401

	def test_update_profile_and_change_password(self, client, auth_headers):
		resp = client.put("/api/auth/profile", json={"name": "Mr Teacher"}, headers=auth_headers)
		assert resp.json()["user"]["name"] == "Mr Teacher"

		resp = client.put(
			"/api/auth/change-password",
			json={"current_password": "nope", "new_password": "newsecret"},
			headers=auth_headers,
		)
		assert resp.status_code == 400
		resp = client.put(
			"/api/auth/change-password",
			json={"current_password": "secret123", "new_password": "newsecret"},
			headers=auth_headers,
		)
		assert resp.status_code == 200
		resp = client.post("/api/auth/login", json={"email": "teacher@example.com", "password": "newsecret"})
		assert resp.status_code == 200

	def test_logout_revokes_token(self, client, auth_headers):
		assert client.post("/api/auth/logout", headers=auth_headers).status_code == 200
		assert client.get("/api/auth/profile", headers=auth_headers).status_code == 401


class TestCorrectionRoutes:
	def test_document_and_correction_crud(self, client, auth_headers):
		resp = client.post(
			"/api/correction/documents",
			json={"title": "Essay", "content": "The cat is was happy."},
			headers=auth_headers,
		)
		assert resp.status_code == 201
		doc_id = resp.json()["document"]["id"]

		resp = client.post(
			f"/api/correction/documents/{doc_id}/corrections",
			json={"type": "grammar", "severity": "error", "position": {"start": 8, "end": 14}, "comment": "double verb"},
			headers=auth_headers,
		)
		assert resp.status_code == 201
		corr_id = resp.json()["correction"]["id"]

		resp = client.put(
			f"/api/correction/documents/{doc_id}/corrections/{corr_id}",
			json={"applied": True},
			headers=auth_headers,
		)
		assert resp.json()["correction"]["applied"] is True

		resp = client.get(f"/api/correction/documents/{doc_id}", headers=auth_headers)
		document = resp.json()["document"]
		assert document["corrections"][0]["position"] == {"start": 8, "end": 14}

		resp = client.put(f"/api/correction/documents/{doc_id}", json={"status": "published"}, headers=auth_headers)
		assert resp.json()["document"]["status"] == "published"
		resp = client.put(f"/api/correction/documents/{doc_id}", json={"status": "bogus"}, headers=auth_headers)
		assert resp.status_code == 400

		assert len(client.get("/api/correction/documents", headers=auth_headers).json()["documents"]) == 1
		resp = client.delete(f"/api/correction/documents/{doc_id}/corrections/{corr_id}", headers=auth_headers)
		assert resp.status_code == 200
		assert client.delete(f"/api/correction/documents/{doc_id}", headers=auth_headers).status_code == 200
		assert client.get(f"/api/correction/documents/{doc_id}", headers=auth_headers).status_code == 404

	def test_editing_content_drops_corrections_past_the_new_end(self, client, auth_headers):
		doc_id = client.post(
			"/api/correction/documents",
			json={"title": "Essay", "content": "The cat is was happy."},
			headers=auth_headers,
		).json()["document"]["id"]
		for start, end in ((0, 3), (8, 14)):
			resp = client.post(
				f"/api/correction/documents/{doc_id}/corrections",
				json={"type": "grammar", "position": {"start": start, "end": end}, "comment": "x"},
				headers=auth_headers,
			)
			assert resp.status_code == 201

		resp = client.put(f"/api/correction/documents/{doc_id}", json={"content": "abc"}, headers=auth_headers)
		assert resp.status_code == 200

		document = client.get(f"/api/correction/documents/{doc_id}", headers=auth_headers).json()["document"]
		assert document["content"] == "abc"
		assert [c["position"] for c in document["corrections"]] == [{"start": 0, "end": 3}]
		for c in document["corrections"]:
			assert 0 <= c["position"]["start"] <= c["position"]["end"] <= len(document["content"])

	def test_correction_span_must_fit_document(self, client, auth_headers):
		doc_id = client.post(
			"/api/correction/documents", json={"title": "Short", "content": "abc"}, headers=auth_headers
		).json()["document"]["id"]
		resp = client.post(
			f"/api/correction/documents/{doc_id}/corrections",
			json={"type": "spelling", "position": {"start": 1, "end": 10}, "comment": "x"},
			headers=auth_headers,
		)
		assert resp.status_code == 400

	def test_analyze_returns_corrections_with_ids(self, client, auth_headers):
		payload = json.dumps([
			{"type": "grammar", "severity": "error", "position": {"start": 8, "end": 14}, "comment": "double verb", "suggestion": "was"}
		])
		_use_ai(completion(payload))
		resp = client.post("/api/correction/analyze", json={"text": "The cat is was happy."}, headers=auth_headers)
		assert resp.status_code == 200
		corrections = resp.json()["corrections"]
		assert corrections[0]["id"].startswith("ai-correction-")
		assert corrections[0]["suggestion"] == "was"

	def test_analyze_parse_failure_is_502_with_generic_message(self, client, auth_headers):
		_use_ai(completion("not json"))
		resp = client.post("/api/correction/analyze", json={"text": "The cat is was happy."}, headers=auth_headers)
		assert resp.status_code == 502
		assert resp.json() == {"detail": "Failed to parse AI response"}

	def test_analyze_transport_failure_does_not_leak(self, client, auth_headers):
		_use_ai(RuntimeError("https://llm.test/v1 api_key=sk-secret"))
		resp = client.post("/api/correction/analyze", json={"text": "The cat is was happy."}, headers=auth_headers)
		assert resp.status_code == 502
		assert resp.json() == {"detail": "Failed to generate content with AI"}


class TestMaterialRoutes:
	PARAMS = {
		"type": "lesson",
		"subject": "math",
		"grade": "primary3",
		"title": "Fractions",
		"knowledgePoints": ["halves", "quarters"],
	}

	def test_generate_with_ai(self, client, auth_headers):
		_use_ai(completion("# Fractions lesson"))
		resp = client.post("/api/material/generate", json=self.PARAMS, headers=auth_headers)
		assert resp.status_code == 200
		body = resp.json()
		assert body["content"] == "# Fractions lesson"
		assert body["metadata"]["aiGenerated"] is True
		assert body["metadata"]["difficulty"] == 3

	def test_generate_falls_back_when_ai_fails(self, client, auth_headers):
		_use_ai(RuntimeError("down"))
		resp = client.post("/api/material/generate", json=self.PARAMS, headers=auth_headers)
		assert resp.status_code == 200
		body = resp.json()
		assert body["metadata"]["aiGenerated"] is False
		assert body["content"].startswith("# Fractions")

	def test_generate_passes_unknown_type_through(self, client, auth_headers):
		_use_ai(completion("# Worksheet"))
		resp = client.post("/api/material/generate", json=dict(self.PARAMS, type="worksheet"), headers=auth_headers)
		assert resp.status_code == 200
		assert resp.json()["metadata"]["type"] == "worksheet"

	def test_generate_validates_params(self, client, auth_headers):
		bad = dict(self.PARAMS, knowledgePoints=[])
		assert client.post("/api/material/generate", json=bad, headers=auth_headers).status_code == 422
		bad = dict(self.PARAMS, difficulty=9)
		assert client.post("/api/material/generate", json=bad, headers=auth_headers).status_code == 422

	def test_save_list_get_delete(self, client, auth_headers):
		resp = client.post(
			"/api/material/save",
			json={
				"type": "lesson",
				"subject": "math",
				"grade": "primary3",
				"title": "Fractions",
				"content": "# Fractions",
				"metadata": {"aiGenerated": False},
			},
			headers=auth_headers,
		)
		assert resp.status_code == 201
		material = resp.json()["material"]
		assert material["metadata"]["materialType"] == "lesson"
		assert material["metadata"]["aiGenerated"] is False

		listed = client.get("/api/material/history", headers=auth_headers).json()["materials"]
		assert [m["id"] for m in listed] == [material["id"]]
		assert client.get(f"/api/material/history/{material['id']}", headers=auth_headers).status_code == 200
		assert client.delete(f"/api/material/history/{material['id']}", headers=auth_headers).status_code == 200
		assert client.get(f"/api/material/history/{material['id']}", headers=auth_headers).status_code == 404


class TestCommunicationRoutes:
	def test_message_returns_advice(self, client, auth_headers):
		_use_ai(completion("Stay calm and listen first."))
		for path in ("/api/communication/message", "/api/ai/communication"):
			resp = client.post(path, json={"message": "A parent is angry"}, headers=auth_headers)
			assert resp.status_code == 200
			assert resp.json() == {"status": "success", "data": "Stay calm and listen first."}

	def test_message_failure_is_generic(self, client, auth_headers):
		_use_ai({"choices": []})
		resp = client.post("/api/communication/message", json={"message": "hi"}, headers=auth_headers)
		assert resp.status_code == 502
		assert resp.json()["detail"] == "Failed to generate communication response with AI"

	def test_history_lifecycle(self, client, auth_headers):
		messages = [{"role": "user", "content": "hi"}, {"role": "assistant", "content": "hello"}]
		resp = client.post("/api/communication/save", json={"title": "Chat", "messages": messages}, headers=auth_headers)
		assert resp.status_code == 201
		conversation = resp.json()["conversation"]
		assert conversation["metadata"]["messageCount"] == 2

		resp = client.get(f"/api/communication/history/{conversation['id']}", headers=auth_headers)
		assert resp.json()["conversation"]["messages"] == messages

		assert client.post("/api/communication/save", json={"title": "Empty", "messages": []}, headers=auth_headers).status_code == 422
		assert len(client.get("/api/communication/history", headers=auth_headers).json()["conversations"]) == 1
		assert client.delete("/api/communication/history", headers=auth_headers).status_code == 200
		assert client.get("/api/communication/history", headers=auth_headers).json()["conversations"] == []


class TestChatAndHealth:
	def test_chat_completion_shape(self, client, auth_headers):
		service = _use_ai(completion("hi there"))
		resp = client.post(
			"/api/chat/completions",
			json={"messages": [{"role": "user", "content": "hello"}], "temperature": 0.2},
			headers=auth_headers,
		)
		assert resp.status_code == 200
		body = resp.json()
		assert body["object"] == "chat.completion"
		assert body["choices"][0]["message"] == {"role": "assistant", "content": "hi there"}
		assert body["model"] == service.config.model

	def test_chat_rejects_unknown_role(self, client, auth_headers):
		resp = client.post(
			"/api/chat/completions",
			json={"messages": [{"role": "tool", "content": "x"}]},
			headers=auth_headers,
		)
		assert resp.status_code == 422

	def test_health(self, client):
		resp = client.get("/api/health")
		assert resp.status_code == 200
		assert resp.json()["status"] == "ok"
