import asyncio
import unittest

import httpx
from fastapi.testclient import TestClient
from starlette.requests import ClientDisconnect

from video_gateway.api.routes import RelayResponse, create_app
from video_gateway.exceptions import ExtractionError
from video_gateway.streaming.proxy import MediaStream

from .fakes import (
    PROVIDERS,
    STREAM_ORIGIN,
    TRENDING_URL,
    FakeExtractor,
    FakeUpstream,
    combined_format,
    make_settings,
    video,
)

P1 = PROVIDERS[0]
VIDEO_ID = "dQw4w9WgXcQ"


class RoutesTestCase(unittest.TestCase):
    def setUp(self):
        self.upstream = FakeUpstream()
        self.extractor = FakeExtractor(
            formats=[
                combined_format("https://media.test/360", "360p"),
                combined_format("https://media.test/720", "720p"),
            ]
        )

    def client(self) -> TestClient:
        app = create_app(make_settings(), self.upstream.transport(), self.extractor)
        return TestClient(app)


class TestHealth(RoutesTestCase):
    def test_health(self):
        with self.client() as client:
            response = client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "OK")


class TestSearchRoutes(RoutesTestCase):
    def test_suggestions_never_fail(self):
        for url in PROVIDERS:
            self.upstream.provider_down(url)

        with self.client() as client:
            response = client.get("/api/search/suggestions", params={"q": "cat"})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), [])

    def test_search_requires_query(self):
        with self.client() as client:
            response = client.get("/api/search")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.upstream.requests, [])

    def test_search_returns_camel_case_videos(self):
        self.upstream.provider_up(P1)
        self.upstream.on(
            f"{P1}/api/v1/search",
            httpx.Response(200, json=[video("abc"), {"type": "channel", "author": "X"}]),
        )

        with self.client() as client:
            response = client.get("/api/search", params={"q": "cats"})

        self.assertEqual(response.status_code, 200)
        (item,) = response.json()
        self.assertEqual(item["videoId"], "abc")
        self.assertEqual(item["type"], "video")
        self.assertEqual(item["lengthSeconds"], 120)
        self.assertEqual(item["videoThumbnails"][0]["url"], "https://img.test/abc.jpg")

    def test_search_failure_hides_upstream_text(self):
        self.upstream.provider_up(P1)
        self.upstream.on(f"{P1}/api/v1/search", httpx.Response(500, text="secret stack trace"))

        with self.client() as client:
            response = client.get("/api/search", params={"q": "cats"})

        self.assertEqual(response.status_code, 500)
        self.assertNotIn("secret", response.text)
        self.assertNotIn("p1.test", response.text)

    def test_trending(self):
        self.upstream.on(TRENDING_URL, httpx.Response(200, json=[video("A"), video("B"), video("A")]))

        with self.client() as client:
            response = client.get("/api/trending")

        self.assertEqual(response.status_code, 200)
        self.assertEqual([v["videoId"] for v in response.json()], ["A", "B"])

    def test_trending_exhausted(self):
        with self.client() as client:
            response = client.get("/api/trending")
        self.assertEqual(response.status_code, 500)


class TestVideoRoutes(RoutesTestCase):
    def test_invalid_id(self):
        with self.client() as client:
            response = client.get("/api/video/bad!id")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.upstream.requests, [])

    def test_video_detail(self):
        self.upstream.provider_up(P1)
        self.upstream.on(
            f"{P1}/api/v1/videos/{VIDEO_ID}",
            httpx.Response(
                200,
                json=video(
                    VIDEO_ID,
                    description="desc",
                    adaptiveFormats=[{"url": "https://m.test/a", "type": "audio/mp4", "bitrate": "1"}],
                ),
            ),
        )

        with self.client() as client:
            response = client.get(f"/api/video/{VIDEO_ID}")

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["description"], "desc")
        options = body["streamingOptions"]
        self.assertEqual(options["embedUrl"], f"{STREAM_ORIGIN}/api/stream/{VIDEO_ID}")
        self.assertEqual(options["adaptiveAudioFormats"][0]["type"], "audio/mp4")
        self.assertTrue(options["adaptiveAudioFormats"][0]["hasAudio"])

    def test_video_detail_upstream_failure(self):
        for url in PROVIDERS:
            self.upstream.provider_down(url)
        with self.client() as client:
            response = client.get(f"/api/video/{VIDEO_ID}")
        self.assertEqual(response.status_code, 500)

    def test_embed(self):
        self.upstream.on(
            f"{STREAM_ORIGIN}/api/stream/{VIDEO_ID}",
            httpx.Response(200, json={"url": "https://edu.test/embed"}),
        )

        with self.client() as client:
            response = client.get(f"/api/embed/{VIDEO_ID}")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json(),
            {"embedUrl": "https://edu.test/embed", "videoId": VIDEO_ID, "streamData": None},
        )

    def test_embed_failure(self):
        with self.client() as client:
            response = client.get(f"/api/embed/{VIDEO_ID}")
        self.assertEqual(response.status_code, 500)

    def test_extraction_info(self):
        with self.client() as client:
            response = client.get(f"/api/ytdl/{VIDEO_ID}")

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["streamUrl"], "https://media.test/720")
        self.assertEqual(body["quality"], "720p")
        self.assertEqual(len(body["formats"]), 2)


class TestStreamRoutes(RoutesTestCase):
    def test_streams_custom_source(self):
        self.upstream.on(
            f"{STREAM_ORIGIN}/api/stream/{VIDEO_ID}/type2",
            httpx.Response(200, content=b"x" * 64, headers={"Content-Type": "video/mp4"}),
        )

        with self.client() as client:
            response = client.get(f"/api/stream/{VIDEO_ID}")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.content, b"x" * 64)
        self.assertEqual(response.headers["content-type"], "video/mp4")
        self.assertEqual(response.headers["content-length"], "64")
        self.assertEqual(response.headers["accept-ranges"], "bytes")
        self.assertEqual(response.headers["access-control-allow-origin"], "*")

    def test_streams_extraction_fallback(self):
        self.upstream.on(
            "https://media.test/360",
            httpx.Response(200, content=b"low"),
        )

        with self.client() as client:
            response = client.get(f"/api/stream/{VIDEO_ID}", params={"quality": "lowest"})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.content, b"low")
        self.assertEqual(response.headers["content-type"], "video/mp4")
        self.assertEqual(response.headers["accept-ranges"], "bytes")

    def test_stream_invalid_id(self):
        with self.client() as client:
            response = client.get("/api/stream/bad!id")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.upstream.requests, [])

    def test_stream_no_suitable_format(self):
        self.extractor.formats = []
        with self.client() as client:
            response = client.get(f"/api/stream/{VIDEO_ID}")
        self.assertEqual(response.status_code, 404)

    def test_stream_all_sources_fail(self):
        self.extractor.error = ExtractionError("yt-dlp: HTTP Error 429")

        with self.client() as client:
            response = client.get(f"/api/stream/{VIDEO_ID}")

        self.assertEqual(response.status_code, 500)
        self.assertNotIn("429", response.text)
        self.assertEqual(response.json(), {"detail": "Failed to stream video"})


class ChunkedBody(httpx.AsyncByteStream):
    """Upstream body arriving in several chunks."""

    def __init__(self, chunks: list[bytes]):
        self.chunks = chunks
        self.closed = False

    async def __aiter__(self):
        for chunk in self.chunks:
            yield chunk

    async def aclose(self):
        self.closed = True


class TestRelayResponse(unittest.IsolatedAsyncioTestCase):
    scope = {"type": "http", "asgi": {"spec_version": "2.4"}, "method": "GET", "path": "/", "headers": []}

    def setUp(self):
        self.body = ChunkedBody([b"one", b"two", b"three"])
        self.media = MediaStream(
            response=httpx.Response(200, stream=self.body),
            source="custom",
            headers={"Content-Type": "video/mp4"},
        )

    async def receive(self):
        await asyncio.Event().wait()

    async def test_relays_each_chunk_as_it_arrives(self):
        sent = []

        async def send(message):
            sent.append(message)

        await RelayResponse(self.media)(self.scope, self.receive, send)

        bodies = [m for m in sent if m["type"] == "http.response.body"]
        self.assertEqual([m["body"] for m in bodies if m["body"]], [b"one", b"two", b"three"])
        self.assertTrue(all(m.get("more_body") for m in bodies[:3]))
        self.assertFalse(bodies[-1].get("more_body", False))
        self.assertTrue(self.body.closed)

    async def test_client_disconnect_closes_upstream(self):
        sent = []

        async def send(message):
            if message["type"] == "http.response.body":
                raise OSError("client went away")
            sent.append(message)

        with self.assertRaises(ClientDisconnect):
            await RelayResponse(self.media)(self.scope, self.receive, send)

        self.assertEqual([m["type"] for m in sent], ["http.response.start"])
        self.assertTrue(self.body.closed)


class TestOpenApi(RoutesTestCase):
    def test_error_responses_documented(self):
        with self.client() as client:
            schema = client.get("/openapi.json").json()

        responses = schema["paths"]["/api/stream/{video_id}"]["get"]["responses"]
        for status in ("400", "404", "500"):
            self.assertEqual(
                responses[status]["content"]["application/json"]["schema"]["$ref"],
                "#/components/schemas/ErrorResponse",
            )
        self.assertIn("ErrorResponse", schema["components"]["schemas"])


if __name__ == "__main__":
    unittest.main()
