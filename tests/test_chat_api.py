import json

import httpx
from conftest import gemini_chunk, sse_body


def _frames(body: str) -> list[dict]:
    return [json.loads(chunk[len("data: "):]) for chunk in body.split("\n\n") if chunk]


def test_relay_streams_normalised_frames(client, use_gemini):
    use_gemini(lambda request: httpx.Response(
        200,
        content=sse_body(gemini_chunk("Let's"), "data: nope\r\n\r\n", gemini_chunk(" think.")),
        headers={"content-type": "text/event-stream"}
    ))

    response = client.post("/api/chat", json={
        "message": "Explain recursion",
        "conversationHistory": [],
        "deepThinking": False
    })

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    assert response.headers["cache-control"] == "no-cache"
    assert _frames(response.text) == [{"text": "Let's"}, {"text": " think."}]


def test_relay_forwards_history_with_model_role(client, use_gemini):
    captured = {}

    def handler(request):
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, content=sse_body(gemini_chunk("ok")))

    use_gemini(handler)
    client.post("/api/chat", json={
        "message": "B",
        "conversationHistory": [
            {"role": "user", "content": "Q"},
            {"role": "assistant", "content": "A"},
        ]
    })

    roles = [c["role"] for c in captured["body"]["contents"]]
    assert roles == ["user", "model", "user"]


def test_relay_rejects_empty_turn_without_calling_upstream(client, use_gemini):
    calls = []
    use_gemini(lambda request: calls.append(request) or httpx.Response(200))

    response = client.post("/api/chat", json={"message": "", "images": []})

    assert response.status_code == 400
    body = response.json()
    assert body["error"]["code"] == "MISSING_MESSAGE"
    assert body["success"] is False
    assert calls == []


def test_relay_reports_missing_api_key(client, use_gemini, settings):
    use_gemini(lambda request: httpx.Response(200))
    settings.GOOGLE_GEMINI_API_KEY = None

    response = client.post("/api/chat", json={"message": "hi"})

    assert response.status_code == 500
    assert response.json()["error"]["code"] == "MISSING_API_KEY"


def test_relay_passes_upstream_error_through(client, use_gemini):
    upstream = {"error": {"code": 400, "message": "API key not valid", "status": "INVALID_ARGUMENT"}}
    use_gemini(lambda request: httpx.Response(403, json=upstream))

    response = client.post("/api/chat", json={"message": "hi"})

    assert response.status_code == 403
    body = response.json()
    assert body["error"]["code"] == "GEMINI_API_ERROR"
    assert body["error"]["details"] == upstream


def test_relay_needs_no_signed_in_user(client, use_gemini):
    use_gemini(lambda request: httpx.Response(200, content=sse_body(gemini_chunk("hi"))))
    response = client.post("/api/chat", json={"message": "hi"})
    assert response.status_code == 200
