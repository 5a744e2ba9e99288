import json
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

from ragcode.embeddings import MAX_EMBEDDING_CHARS, OllamaEmbedder, truncate_for_embedding
from ragcode.errors import AppError, ErrorType, is_error_type


class _Handler(BaseHTTPRequestHandler):
    def do_POST(self):
        length = int(self.headers.get("Content-Length", 0))
        body = self.rfile.read(length)
        status, payload = self.server.responder(self.command, self.path, body)
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        self.wfile.write(payload)

    def log_message(self, *args):
        pass


@pytest.fixture
def serve():
    servers = []

    def start(responder):
        server = ThreadingHTTPServer(("127.0.0.1", 0), _Handler)
        server.responder = responder
        threading.Thread(target=server.serve_forever, daemon=True).start()
        servers.append(server)
        return f"http://127.0.0.1:{server.server_address[1]}"

    yield start
    for server in servers:
        server.shutdown()
        server.server_close()


def _ok(embedding):
    return 200, json.dumps({"embedding": embedding}).encode()


def test_embed(serve):
    seen = []

    def responder(method, path, body):
        seen.append((method, path, json.loads(body)))
        return _ok([0.1, 0.2, 0.3])

    embedder = OllamaEmbedder(serve(responder), "test-model")
    assert embedder.embed("hello") == [0.1, 0.2, 0.3]
    assert seen == [("POST", "/api/embeddings", {"model": "test-model", "prompt": "hello"})]


def test_embed_http_error(serve):
    url = serve(lambda m, p, b: (503, b"service unavailable"))
    with pytest.raises(AppError) as info:
        OllamaEmbedder(url, "test-model").embed("hello")
    assert info.value.error_type is ErrorType.EXTERNAL
    assert "503" in str(info.value)
    assert "service unavailable" in str(info.value)


def test_embed_invalid_json(serve):
    url = serve(lambda m, p, b: (200, b"not json"))
    with pytest.raises(AppError) as info:
        OllamaEmbedder(url, "test-model").embed("hello")
    assert info.value.error_type is ErrorType.INTERNAL


def test_embed_connection_refused():
    with pytest.raises(AppError) as info:
        OllamaEmbedder("http://127.0.0.1:1", "test-model", timeout=2).embed("hello")
    assert info.value.error_type is ErrorType.EXTERNAL


def test_embed_batch(serve):
    url = serve(lambda m, p, b: _ok([0.1, 0.2, 0.3]))
    embeddings = OllamaEmbedder(url, "test-model").embed_batch(["one", "two"])
    assert embeddings == [[0.1, 0.2, 0.3], [0.1, 0.2, 0.3]]


def test_embed_batch_preserves_order(serve):
    def responder(method, path, body):
        return _ok([float(len(json.loads(body)["prompt"]))])

    url = serve(responder)
    embeddings = OllamaEmbedder(url, "test-model", num_workers=3).embed_batch(["aaa", "a", "aa", "aaaa"])
    assert embeddings == [[3.0], [1.0], [2.0], [4.0]]


def test_embed_batch_error_propagation(serve):
    lock = threading.Lock()
    calls = {"count": 0}

    def responder(method, path, body):
        with lock:
            calls["count"] += 1
            first = calls["count"] == 1
        return _ok([0.1]) if first else (500, b"")

    url = serve(responder)
    with pytest.raises(AppError) as info:
        OllamaEmbedder(url, "test-model").embed_batch(["one", "two", "three"])
    assert "embedding worker failed on index" in str(info.value)
    assert is_error_type(info.value, ErrorType.EXTERNAL)


def test_embed_batch_empty_input():
    embedder = OllamaEmbedder("http://localhost:11434", "test-model")
    assert embedder.embed_batch([]) == []


def test_new_embedder():
    embedder = OllamaEmbedder("http://localhost:11434", "all-minilm")
    assert embedder.base_url == "http://localhost:11434"
    assert embedder.model == "all-minilm"
    assert embedder.num_workers == 4
    assert embedder.max_concurrent == 16


def test_non_positive_concurrency_settings():
    embedder = OllamaEmbedder("http://x", "m", num_workers=0, max_concurrent=0)
    assert embedder.num_workers == 1
    assert embedder.max_concurrent == 2


def test_truncate_for_embedding():
    assert truncate_for_embedding("short") == "short"
    long_text = "é" * 500
    truncated = truncate_for_embedding(long_text)
    assert len(truncated) == MAX_EMBEDDING_CHARS == 384
    assert truncated == "é" * 384


def test_truncate_replaces_invalid_characters():
    assert truncate_for_embedding("a\ud800\udc00b") == "a\ufffdb"


def test_embed_sends_truncated_prompt(serve):
    prompts = []

    def responder(method, path, body):
        prompts.append(json.loads(body)["prompt"])
        return _ok([float(len(json.loads(body)["prompt"]))])

    result = OllamaEmbedder(serve(responder), "m").embed("x" * 1000)
    assert result == [384.0]
    assert prompts == ["x" * 384]