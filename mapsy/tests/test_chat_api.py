"""
Chat pipeline through the HTTP API.

Vision and text generation are replaced with in-process fakes and MongoDB
with mongomock, so every test runs without network access.
"""
from mapsy.core.exceptions import UpstreamError
from mapsy.models.vision import LandmarkDetectionResult
from mapsy.services.chat_service import IMAGE_APOLOGY, IMAGE_PLACEHOLDER, TEXT_APOLOGY
from mapsy.tests.conftest import llm_down, register

JPEG = ("photo.jpg", b"\xff\xd8\xff\xe0fake-jpeg-bytes", "image/jpeg")

TOUR_EIFFEL = LandmarkDetectionResult.model_validate({
    "landmarks": [{
        "description": "Tour Eiffel",
        "score": 0.92,
        "locations": [{"latLng": {"latitude": 48.858, "longitude": 2.294}}],
    }],
    "webDetection": {"bestGuessLabels": [{"label": "eiffel tower"}]},
})


def messages_of(client, session_id, headers, **params):
    r = client.get(f"/api/chat/sessions/{session_id}/messages", params=params, headers=headers)
    assert r.status_code == 200, r.text
    return r.json()["data"]


def test_create_session_persists_one_welcome_message(client, auth_headers):
    r = client.post("/api/chat/sessions", json={"country": "Perú", "city": "Cusco"}, headers=auth_headers)
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    session = body["data"]["session"]
    assert session["country"] == "Perú"
    assert session["isActive"] is True
    welcome = body["data"]["welcomeMessage"]
    assert welcome["type"] == "system"
    assert welcome["sender"] == "assistant"
    assert "Cusco, Perú" in welcome["content"]

    data = messages_of(client, session["id"], auth_headers)
    assert [(m["type"], m["sender"]) for m in data["messages"]] == [("system", "assistant")]


def test_create_session_requires_country_and_city(client, auth_headers):
    r = client.post("/api/chat/sessions", json={"country": "  ", "city": "Lima"}, headers=auth_headers)
    assert r.status_code == 400
    body = r.json()
    assert body["code"] == "VALIDATION_ERROR"
    assert body["errors"] == [{"field": "country", "message": "Country is required"}]

    r = client.post("/api/chat/sessions", json={"city": "Lima"}, headers=auth_headers)
    assert r.status_code == 400
    assert r.json()["errors"][0]["field"] == "country"


def test_chat_routes_require_auth(client):
    r = client.get("/api/chat/sessions")
    assert r.status_code == 401
    assert r.json()["code"] == "AUTH_REQUIRED"


def test_send_text_persists_question_and_answer(client, auth_headers, session_id, guide_ai):
    r = client.post(
        f"/api/chat/sessions/{session_id}/messages",
        json={"content": "  ¿A qué hora abre el Louvre?  "},
        headers=auth_headers,
    )
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["userMessage"]["content"] == "¿A qué hora abre el Louvre?"
    assert data["userMessage"]["sender"] == "user"
    assert data["assistantMessage"]["type"] == "text"
    assert data["assistantMessage"]["content"] == guide_ai.answer
    assert guide_ai.questions == ["¿A qué hora abre el Louvre?"]

    messages = messages_of(client, session_id, auth_headers)["messages"]
    assert [m["sender"] for m in messages] == ["assistant", "user", "assistant"]
    stamps = [m["timestamp"] for m in messages]
    assert stamps == sorted(stamps)


def test_empty_text_is_rejected_and_nothing_persisted(client, auth_headers, session_id, guide_ai):
    r = client.post(f"/api/chat/sessions/{session_id}/messages", json={"content": "   "}, headers=auth_headers)
    assert r.status_code == 400
    assert r.json()["code"] == "VALIDATION_ERROR"
    assert guide_ai.questions == []
    assert messages_of(client, session_id, auth_headers)["pagination"]["totalItems"] == 1


def test_text_generation_failure_degrades_to_apology(client, auth_headers, session_id, guide_ai):
    guide_ai.error = llm_down()

    r = client.post(f"/api/chat/sessions/{session_id}/messages", json={"content": "Hola"}, headers=auth_headers)
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["data"]["assistantMessage"]["type"] == "system"
    assert body["data"]["assistantMessage"]["content"] == TEXT_APOLOGY
    assert messages_of(client, session_id, auth_headers)["pagination"]["totalItems"] == 3


def test_image_with_landmark_describes_it_and_titles_session(client, auth_headers, session_id, vision, guide_ai):
    vision.result = TOUR_EIFFEL

    r = client.post(f"/api/chat/sessions/{session_id}/images", files={"image": JPEG}, headers=auth_headers)
    assert r.status_code == 200, r.text
    data = r.json()["data"]
    assert data["userMessage"]["type"] == "image"
    assert data["userMessage"]["content"] == IMAGE_PLACEHOLDER
    assert data["userMessage"]["processing"] is False
    assert data["userMessage"]["landmarkInfo"]["landmarks"][0]["description"] == "Tour Eiffel"
    assert data["assistantMessage"]["content"] == guide_ai.description
    assert data["landmarkInfo"]["landmarks"][0]["score"] == 0.92
    assert guide_ai.described == ["Tour Eiffel"]

    session = messages_of(client, session_id, auth_headers)["session"]
    assert session["title"] == "Chat sobre Tour Eiffel"


def test_image_keeps_existing_session_title(client, auth_headers, session_id, vision):
    vision.result = TOUR_EIFFEL
    client.patch(f"/api/chat/sessions/{session_id}", json={"title": "Vacaciones"}, headers=auth_headers)

    client.post(f"/api/chat/sessions/{session_id}/images", files={"image": JPEG}, headers=auth_headers)

    assert messages_of(client, session_id, auth_headers)["session"]["title"] == "Vacaciones"


def test_image_with_only_web_label_uses_best_guess(client, auth_headers, session_id, vision, guide_ai):
    vision.result = LandmarkDetectionResult.model_validate({
        "webDetection": {"bestGuessLabels": [{"label": ""}, {"label": "gothic cathedral"}]},
    })

    r = client.post(f"/api/chat/sessions/{session_id}/images", files={"image": JPEG}, headers=auth_headers)
    assert r.status_code == 200
    assert guide_ai.described == ["gothic cathedral"]
    assert "title" not in messages_of(client, session_id, auth_headers)["session"]


def test_unidentified_image_falls_back_without_text_generation(client, auth_headers, session_id, guide_ai):
    r = client.post(f"/api/chat/sessions/{session_id}/images", files={"image": JPEG}, headers=auth_headers)
    assert r.status_code == 200
    reply = r.json()["data"]["assistantMessage"]
    assert reply["type"] == "text"
    assert "No pude identificar un lugar específico" in reply["content"]
    assert "París, Francia" in reply["content"]
    assert guide_ai.described == []


def test_vision_failure_finishes_processing_and_apologizes(client, auth_headers, session_id, vision):
    vision.error = UpstreamError("Vision API timed out", service="vision")

    r = client.post(f"/api/chat/sessions/{session_id}/images", files={"image": JPEG}, headers=auth_headers)
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["data"]["assistantMessage"]["type"] == "system"
    assert body["data"]["assistantMessage"]["content"] == IMAGE_APOLOGY
    assert "landmarkInfo" not in body["data"]

    messages = messages_of(client, session_id, auth_headers)["messages"]
    image_messages = [m for m in messages if m["type"] == "image"]
    assert len(image_messages) == 1
    assert image_messages[0]["processing"] is False


def test_description_failure_keeps_landmark_info(client, auth_headers, session_id, vision, guide_ai):
    vision.result = TOUR_EIFFEL
    guide_ai.error = llm_down()

    r = client.post(f"/api/chat/sessions/{session_id}/images", files={"image": JPEG}, headers=auth_headers)
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["assistantMessage"]["content"] == IMAGE_APOLOGY
    assert data["userMessage"]["processing"] is False
    assert data["userMessage"]["landmarkInfo"]["landmarks"][0]["description"] == "Tour Eiffel"


def test_non_image_upload_is_rejected(client, auth_headers, session_id, vision):
    r = client.post(
        f"/api/chat/sessions/{session_id}/images",
        files={"image": ("notes.txt", b"hello", "text/plain")},
        headers=auth_headers,
    )
    assert r.status_code == 400
    assert r.json()["errors"][0]["field"] == "image"
    assert vision.calls == 0
    assert messages_of(client, session_id, auth_headers)["pagination"]["totalItems"] == 1


def test_missing_and_oversized_uploads_are_rejected(client, auth_headers, session_id, monkeypatch):
    from mapsy.core.config import settings
    monkeypatch.setattr(settings, "max_image_size", 8)

    r = client.post(f"/api/chat/sessions/{session_id}/images", headers=auth_headers)
    assert r.status_code == 400
    assert r.json()["errors"][0]["message"] == "Image file is required"

    r = client.post(
        f"/api/chat/sessions/{session_id}/images",
        files={"image": ("big.png", b"x" * 9, "image/png")},
        headers=auth_headers,
    )
    assert r.status_code == 400
    assert "File too large" in r.json()["message"]


def test_recommendations_are_parsed_and_persisted(client, auth_headers, session_id, guide_ai):
    guide_ai.recommendations_text = (
        "Claro:\n```json\n"
        '[{"name": "Louvre", "type": "museum", "description": "Arte", "distance": 1200, "rating": 4.8},'
        ' {"name": "Sin tipo", "description": "incompleto"}]\n'
        "```\n¡Disfruta!"
    )

    r = client.post(
        f"/api/chat/sessions/{session_id}/recommendations",
        json={"currentLandmark": "Tour Eiffel"},
        headers=auth_headers,
    )
    assert r.status_code == 200, r.text
    data = r.json()["data"]
    assert data["message"]["type"] == "recommendation"
    assert data["message"]["content"].endswith("en París:")
    assert data["recommendations"] == [
        {"name": "Louvre", "type": "museum", "description": "Arte", "distance": 1200, "rating": 4.8}
    ]
    assert data["message"]["recommendations"][0]["name"] == "Louvre"


def test_recommendations_without_body_and_unparseable_reply(client, auth_headers, session_id, guide_ai):
    guide_ai.recommendations_text = "No tengo recomendaciones."

    r = client.post(f"/api/chat/sessions/{session_id}/recommendations", headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["data"]["recommendations"] == []


def test_recommendations_failure_surfaces_as_server_error(client, auth_headers, session_id, guide_ai):
    guide_ai.error = llm_down()

    r = client.post(f"/api/chat/sessions/{session_id}/recommendations", json={}, headers=auth_headers)
    assert r.status_code == 500
    body = r.json()
    assert body["success"] is False
    assert body["code"] == "UPSTREAM_ERROR"
    assert messages_of(client, session_id, auth_headers)["pagination"]["totalItems"] == 1


def test_messages_are_ordered_and_paginated(client, auth_headers, session_id):
    client.post(f"/api/chat/sessions/{session_id}/recommendations", json={}, headers=auth_headers)

    first = messages_of(client, session_id, auth_headers, page=1, limit=1)
    second = messages_of(client, session_id, auth_headers, page=2, limit=1)

    assert first["messages"][0]["type"] == "system"
    assert second["messages"][0]["type"] == "recommendation"
    assert first["pagination"] == {"currentPage": 1, "totalPages": 2, "totalItems": 2, "hasNext": True}
    assert second["pagination"] == {"currentPage": 2, "totalPages": 2, "totalItems": 2, "hasNext": False}


def test_bad_pagination_params_fall_back_to_defaults(client, auth_headers, session_id):
    data = messages_of(client, session_id, auth_headers, page="abc", limit="-3")
    assert data["pagination"]["currentPage"] == 1
    assert len(data["messages"]) == 1


def test_list_sessions_includes_last_message_preview(client, auth_headers, session_id):
    client.post(f"/api/chat/sessions/{session_id}/messages", json={"content": "Hola"}, headers=auth_headers)

    r = client.get("/api/chat/sessions", headers=auth_headers)
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["pagination"]["totalItems"] == 1
    session = data["sessions"][0]
    assert session["id"] == session_id
    assert "userId" not in session
    assert session["lastMessage"]["sender"] == "assistant"
    assert session["lastMessage"]["type"] == "text"


def test_sessions_of_another_user_are_not_found(client, auth_headers, session_id):
    other = register(client, name="Luis")
    other_headers = {"Authorization": f"Bearer {other['token']}"}

    r = client.get(f"/api/chat/sessions/{session_id}/messages", headers=other_headers)
    assert r.status_code == 404
    assert r.json()["code"] == "NOT_FOUND"

    r = client.post(f"/api/chat/sessions/{session_id}/messages", json={"content": "Hola"}, headers=other_headers)
    assert r.status_code == 404

    r = client.get("/api/chat/sessions", headers=other_headers)
    assert r.json()["data"]["sessions"] == []


def test_malformed_session_id_is_not_found(client, auth_headers):
    r = client.get("/api/chat/sessions/not-an-id/messages", headers=auth_headers)
    assert r.status_code == 404


def test_update_session(client, auth_headers, session_id):
    r = client.patch(
        f"/api/chat/sessions/{session_id}",
        json={"isActive": False, "title": "  Día 1  "},
        headers=auth_headers,
    )
    assert r.status_code == 200
    session = r.json()["data"]
    assert session["isActive"] is False
    assert session["title"] == "Día 1"

    r = client.patch(f"/api/chat/sessions/{session_id}", json={"isActive": "no"}, headers=auth_headers)
    assert r.status_code == 400


def test_malformed_vision_reply_degrades_to_apology(client, auth_headers, session_id, vision, guide_ai):
    vision.payload = {"responses": [{"landmarkAnnotations": [{"description": "X", "score": "high"}]}]}

    r = client.post(f"/api/chat/sessions/{session_id}/images", files={"image": JPEG}, headers=auth_headers)
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["data"]["assistantMessage"]["type"] == "system"
    assert body["data"]["assistantMessage"]["content"] == IMAGE_APOLOGY
    assert guide_ai.described == []

    messages = messages_of(client, session_id, auth_headers)["messages"]
    assert [(m["type"], m["sender"], m.get("processing")) for m in messages] == [
        ("system", "assistant", False),
        ("image", "user", False),
        ("system", "assistant", False),
    ]


def test_non_finite_recommendation_numbers_keep_history_readable(client, auth_headers, session_id, guide_ai):
    guide_ai.recommendations_text = (
        '[{"name": "A", "type": "museum", "description": "d", "distance": Infinity,'
        ' "coordinates": {"lat": NaN, "lng": 1}}]'
    )

    r = client.post(f"/api/chat/sessions/{session_id}/recommendations", json={}, headers=auth_headers)
    assert r.status_code == 200, r.text
    assert r.json()["data"]["recommendations"] == [{"name": "A", "type": "museum", "description": "d"}]

    data = messages_of(client, session_id, auth_headers)
    assert data["messages"][-1]["recommendations"][0]["name"] == "A"


def test_unexpected_error_uses_internal_error_envelope(client, auth_headers, session_id, vision):
    from fastapi.testclient import TestClient
    from mapsy.main import app

    vision.error = RuntimeError("boom")
    lenient = TestClient(app, raise_server_exceptions=False)

    r = lenient.post(f"/api/chat/sessions/{session_id}/images", files={"image": JPEG}, headers=auth_headers)
    assert r.status_code == 500
    assert r.json() == {"success": False, "message": "Internal server error", "code": "INTERNAL_ERROR"}
