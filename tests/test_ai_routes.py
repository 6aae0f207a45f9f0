import asyncio
import json
from types import SimpleNamespace

import httpx

from app.routes.ai import chat

from conftest import make_settings


class TrackedStream(httpx.AsyncByteStream):
  def __init__(self, chunks):
    self.chunks = chunks
    self.closed = False

  async def __aiter__(self):
    for c in self.chunks:
      yield c

  async def aclose(self):
    self.closed = True


def test_analyze_forwards_body(client, upstream):
  upstream.json("/api/ai/analyze", {"analysis": "farm more"})

  r = client.post("/api/ai/analyze", json={"playerData": {"level": 30}, "analysisType": "general"})

  assert r.status_code == 200
  assert r.json() == {"analysis": "farm more"}
  sent = upstream.calls("/api/ai/analyze")[0]
  assert json.loads(sent.content) == {"playerData": {"level": 30}, "analysisType": "general"}


def test_analyze_upstream_error_passes_status(client, upstream):
  upstream.json("/api/ai/analyze", {"error": "model overloaded"}, status=503)

  r = client.post("/api/ai/analyze", json={})

  assert r.status_code == 503
  assert r.json() == {"error": "model overloaded"}
  # AI calls are not retried
  assert len(upstream.calls("/api/ai/analyze")) == 1


def test_year_end_summary_error_without_body(client, upstream):
  upstream.on("/api/ai/year-end-summary", httpx.Response(502, text="bad gateway"))

  r = client.post("/api/ai/year-end-summary", json={"playerData": {}})

  assert r.status_code == 502
  assert r.json() == {"error": "Unknown error"}


def test_year_end_summary_network_failure(client, upstream):
  upstream.on("/api/ai/year-end-summary", httpx.ConnectError("refused"))

  r = client.post("/api/ai/year-end-summary", json={})

  assert r.status_code == 500
  assert r.json() == {"error": "refused"}


def test_chat_streams_event_stream(client, upstream):
  events = b"data: hello\n\ndata: world\n\n"
  upstream.on("/api/ai/chat", httpx.Response(
      200, stream=TrackedStream([b"data: hello\n\n", b"data: world\n\n"]), headers={"content-type": "text/event-stream"}))

  r = client.post("/api/ai/chat", json={"question": "how do I climb?"})

  assert r.status_code == 200
  assert r.headers["content-type"].startswith("text/event-stream")
  assert r.headers["x-accel-buffering"] == "no"
  assert r.content == events
  assert json.loads(upstream.calls("/api/ai/chat")[0].content)["stream"] is True


def test_chat_json_reply(client, upstream):
  upstream.json("/api/ai/chat", {"answer": "ward more"})

  r = client.post("/api/ai/chat", json={"question": "?"})

  assert r.json() == {"answer": "ward more"}


def test_chat_upstream_error(client, upstream):
  upstream.json("/api/ai/chat", {"error": "bad question"}, status=400)

  r = client.post("/api/ai/chat", json={"question": ""})

  assert r.status_code == 400
  assert r.json() == {"error": "bad question"}


def test_dashboard_insights_validated(client, upstream):
  upstream.json("/api/ai/dashboard-insights", {
    "insights": [
      {"type": "kda", "title": "KDA", "textInsights": "solid", "visualData": {"chartType": "line", "data": [1, 2]}},
      {"title": ""},
      "garbage",
      {"type": "vision", "available": False, "visualData": {"chartType": "sankey", "data": "x"}},
    ],
    "analysisType": "dashboard",
    "matchesAnalyzed": 20,
    "model": "m1",
  })

  r = client.post("/api/ai/dashboard-insights", json={"playerData": {}})

  assert r.status_code == 200
  assert r.headers["cache-control"] == "no-store, no-cache, must-revalidate"
  body = r.json()
  assert body["matchesAnalyzed"] == 20
  cards = body["insights"]
  assert len(cards) == 3
  assert cards[0]["visualData"]["chartType"] == "line"
  assert cards[1]["type"] == "unknown"
  assert cards[1]["title"] == "Insight"
  assert cards[1]["visualData"]["chartType"] == "bar"
  assert cards[1]["available"] is True
  assert cards[2]["available"] is False
  assert cards[2]["visualData"]["chartType"] == "bar"
  assert cards[2]["visualData"]["data"] == []


def test_dashboard_insights_legacy_text_passthrough(client, upstream):
  legacy = {"insights": "You are doing fine.", "analysisType": "dashboard", "matchesAnalyzed": 5, "model": "m1"}
  upstream.json("/api/ai/dashboard-insights", legacy)

  r = client.post("/api/ai/dashboard-insights", json={})

  assert r.json() == legacy


def test_dashboard_insights_timeout_is_504(client, upstream):
  upstream.on("/api/ai/dashboard-insights", httpx.ReadTimeout("too slow"))

  r = client.post("/api/ai/dashboard-insights", json={})

  assert r.status_code == 504
  assert r.json()["isTimeout"] is True


def test_dashboard_insights_start_and_result(client, upstream):
  upstream.json("/api/ai/dashboard-insights/start", {"jobId": "j-1", "status": "pending"})
  upstream.json("/api/ai/dashboard-insights/result/j-1", {"status": "done", "insights": []})

  start = client.post("/api/ai/dashboard-insights/start", json={"playerData": {}})
  result = client.get("/api/ai/dashboard-insights/result/j-1")

  assert start.json()["jobId"] == "j-1"
  assert result.json() == {"status": "done", "insights": []}


def test_dashboard_insights_result_unknown_job(client, upstream):
  r = client.get("/api/ai/dashboard-insights/result/nope")

  assert r.status_code == 404
  assert r.json() == {"error": "not found"}


def test_ai_routes_require_backend_url(make_client, upstream):
  client = make_client(backend_url=None)

  r = client.post("/api/ai/chat", json={"question": "?"})

  assert r.status_code == 500
  assert "Backend URL is not configured" in r.json()["error"]
  assert upstream.requests == []


def test_chat_stream_closed_when_never_relayed(upstream):
  stream = TrackedStream([b"data: hi\n\n"])
  upstream.on("/api/ai/chat", httpx.Response(200, headers={"content-type": "text/event-stream"}, stream=stream))
  request = SimpleNamespace(app=SimpleNamespace(state=SimpleNamespace(transport=upstream.transport())))

  async def main():
    resp = await chat(request, {"question": "?"}, make_settings())
    # client went away: the body is never iterated, only the background task runs
    await resp.background()

  asyncio.run(main())

  assert stream.closed
