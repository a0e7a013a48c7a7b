"""Tests for the HTTP clients against an httpx.MockTransport."""

import base64
import json

import httpx
import pytest

from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.embed.ollama.EmbedClientOllama import EmbedClientOllama
from shared.clients.embed.openai.EmbedClientOpenai import EmbedClientOpenai
from shared.clients.extract.ExtractClientManager import ExtractClientManager
from shared.clients.extract.documentai.ExtractClientDocumentai import ExtractClientDocumentai
from shared.clients.rag.RAGClientInterface import make_point_id, select_newest_run
from shared.clients.rag.RAGClientManager import RAGClientManager
from shared.clients.rag.qdrant.RAGClientQdrant import RAGClientQdrant
from shared.clients.storage.StorageClientManager import StorageClientManager
from shared.clients.storage.gcs.StorageClientGcs import StorageClientGcs
from shared.exceptions import (
    EmbeddingFailed,
    ExtractionFailed,
    ObjectNotFound,
    ObjectStoreUnavailable,
    PersistenceFailed,
)
from shared.models.ingestion import ValidityPolicy
from tests.fakes import boot_with_handler


@pytest.fixture
def client_env(monkeypatch):
    monkeypatch.setenv("STORAGE_GCS_BASE_URL", "http://gcs.test")
    monkeypatch.setenv("STORAGE_GCS_ACCESS_TOKEN", "gcs-token")
    monkeypatch.setenv("EXTRACT_DOCUMENTAI_PROJECT_ID", "proj")
    monkeypatch.setenv("EXTRACT_DOCUMENTAI_LOCATION", "eu")
    monkeypatch.setenv("EXTRACT_DOCUMENTAI_PROCESSOR_ID", "proc")
    monkeypatch.setenv("EMBED_ENGINE", "openai")
    monkeypatch.setenv("EMBED_MODEL", "text-embedding-3-small")
    monkeypatch.setenv("EMBED_OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("EMBED_OLLAMA_BASE_URL", "http://ollama.test")
    monkeypatch.setenv("RAG_QDRANT_BASE_URL", "http://qdrant.test")
    monkeypatch.setenv("RAG_QDRANT_COLLECTION", "resumes")
    monkeypatch.delenv("RAG_VALIDITY_POLICY", raising=False)
    return monkeypatch


##########################################
################ MANAGERS ################
##########################################


def test_managers_resolve_default_engines(helper_config, client_env) -> None:
    assert isinstance(StorageClientManager(helper_config).get_client(), StorageClientGcs)
    assert isinstance(ExtractClientManager(helper_config).get_client(), ExtractClientDocumentai)
    assert isinstance(EmbedClientManager(helper_config).get_client(), EmbedClientOpenai)
    assert isinstance(RAGClientManager(helper_config).get_client(), RAGClientQdrant)


def test_embed_engine_is_case_insensitive(helper_config, client_env) -> None:
    client_env.setenv("EMBED_ENGINE", " OLLAMA ")

    assert isinstance(EmbedClientManager(helper_config).get_client(), EmbedClientOllama)


def test_unknown_engine_is_rejected(helper_config, client_env) -> None:
    client_env.setenv("EMBED_ENGINE", "word2vec")

    with pytest.raises(ValueError, match="Unsupported embed engine"):
        EmbedClientManager(helper_config)


def test_missing_required_config_is_rejected(helper_config, client_env) -> None:
    client_env.delenv("RAG_QDRANT_COLLECTION")

    with pytest.raises(ValueError, match="RAG_QDRANT_COLLECTION"):
        RAGClientQdrant(helper_config)


def test_invalid_validity_policy_is_rejected(helper_config, client_env) -> None:
    client_env.setenv("RAG_VALIDITY_POLICY", "sometimes")

    with pytest.raises(ValueError, match="RAG_VALIDITY_POLICY"):
        RAGClientQdrant(helper_config)


##########################################
################ STORAGE #################
##########################################


@pytest.mark.asyncio
async def test_gcs_fetches_metadata_and_content(helper_config, client_env) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.params.get("alt") == "media":
            return httpx.Response(200, content=b"%PDF-1.7 bytes")
        return httpx.Response(200, json={"name": "users/42/resume.pdf", "metadata": {"premium": "true"}})

    client = StorageClientGcs(helper_config)
    await boot_with_handler(client, handler)
    try:
        metadata = await client.do_fetch_metadata("uploads", "users/42/resume.pdf")
        content = await client.do_download("uploads", "users/42/resume.pdf")
    finally:
        await client.close()

    assert metadata == {"premium": "true"}
    assert client.is_premium(metadata)
    assert content == b"%PDF-1.7 bytes"
    assert seen[0].url.raw_path.decode().startswith("/storage/v1/b/uploads/o/users%2F42%2Fresume.pdf")
    assert seen[0].headers["Authorization"] == "Bearer gcs-token"


@pytest.mark.asyncio
async def test_gcs_object_without_metadata_is_not_premium(helper_config, client_env) -> None:
    client = StorageClientGcs(helper_config)
    await boot_with_handler(client, lambda request: httpx.Response(200, json={"name": "x"}))
    try:
        metadata = await client.do_fetch_metadata("uploads", "users/42/resume.pdf")
    finally:
        await client.close()

    assert metadata == {}
    assert not client.is_premium(metadata)


@pytest.mark.asyncio
@pytest.mark.parametrize("status, error", [(404, ObjectNotFound), (503, ObjectStoreUnavailable)])
async def test_gcs_errors_are_translated(helper_config, client_env, status, error) -> None:
    client = StorageClientGcs(helper_config)
    await boot_with_handler(client, lambda request: httpx.Response(status, text="nope"))
    try:
        with pytest.raises(error):
            await client.do_download("uploads", "users/42/resume.pdf")
    finally:
        await client.close()


@pytest.mark.asyncio
async def test_gcs_transport_error_is_unavailable(helper_config, client_env) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = StorageClientGcs(helper_config)
    await boot_with_handler(client, handler)
    try:
        with pytest.raises(ObjectStoreUnavailable):
            await client.do_fetch_metadata("uploads", "users/42/resume.pdf")
    finally:
        await client.close()


##########################################
############### EXTRACTION ###############
##########################################


@pytest.mark.asyncio
async def test_documentai_sends_base64_pdf_and_returns_text(helper_config, client_env) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"document": {"text": "Jane Doe\nEngineer"}})

    client = ExtractClientDocumentai(helper_config)
    await boot_with_handler(client, handler)
    try:
        document = await client.do_extract(b"%PDF")
    finally:
        await client.close()

    assert document.text == "Jane Doe\nEngineer"
    assert str(seen[0].url) == "https://eu-documentai.googleapis.com/v1/projects/proj/locations/eu/processors/proc:process"
    body = json.loads(seen[0].content)
    assert body["rawDocument"] == {"content": base64.b64encode(b"%PDF").decode(), "mimeType": "application/pdf"}


@pytest.mark.asyncio
async def test_documentai_without_text_returns_empty_document(helper_config, client_env) -> None:
    client = ExtractClientDocumentai(helper_config)
    await boot_with_handler(client, lambda request: httpx.Response(200, json={"document": {}}))
    try:
        document = await client.do_extract(b"%PDF")
    finally:
        await client.close()

    assert document.text == ""


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, text="internal"),
        httpx.Response(400, json={"error": {"message": "bad pdf"}}),
        httpx.Response(200, text="<html>"),
    ],
)
async def test_documentai_failures_raise_extraction_failed(helper_config, client_env, response) -> None:
    client = ExtractClientDocumentai(helper_config)
    await boot_with_handler(client, lambda request: response)
    try:
        with pytest.raises(ExtractionFailed):
            await client.do_extract(b"%PDF")
    finally:
        await client.close()


##########################################
################ EMBEDDING ###############
##########################################


@pytest.mark.asyncio
async def test_openai_embedding(helper_config, client_env) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"data": [{"index": 0, "embedding": [0.1, 0.2, 0.3]}]})

    client = EmbedClientOpenai(helper_config)
    await boot_with_handler(client, handler)
    try:
        vector = await client.do_embed("chunk text")
    finally:
        await client.close()

    assert vector == [0.1, 0.2, 0.3]
    assert seen[0].url.path == "/v1/embeddings"
    assert seen[0].headers["Authorization"] == "Bearer sk-test"
    assert json.loads(seen[0].content) == {"model": "text-embedding-3-small", "input": "chunk text"}


@pytest.mark.asyncio
async def test_ollama_embedding(helper_config, client_env) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert json.loads(request.content) == {"model": "text-embedding-3-small", "input": ["chunk"], "truncate": True}
        return httpx.Response(200, json={"embeddings": [[1.0, 2.0]]})

    client = EmbedClientOllama(helper_config)
    await boot_with_handler(client, handler)
    try:
        assert await client.do_embed("chunk") == [1.0, 2.0]
    finally:
        await client.close()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(429, json={"error": "rate limited"}),
        httpx.Response(200, json={"data": []}),
        httpx.Response(200, json={"object": "list"}),
    ],
)
async def test_openai_failures_raise_embedding_failed(helper_config, client_env, response) -> None:
    client = EmbedClientOpenai(helper_config)
    await boot_with_handler(client, lambda request: response)
    try:
        with pytest.raises(EmbeddingFailed):
            await client.do_embed("chunk")
    finally:
        await client.close()


##########################################
################## STORE #################
##########################################


class QdrantStub:
    """Minimal in-memory Qdrant answering the endpoints the client uses."""

    def __init__(self) -> None:
        self.points: dict[str, dict] = {}
        self.requests: list[tuple[str, str]] = []
        self.fail_upsert = False

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.requests.append((request.method, path))
        body = json.loads(request.content) if request.content else {}

        if path.endswith("/points/delete"):
            user_id = body["filter"]["must"][0]["match"]["value"]
            self.points = {pid: p for pid, p in self.points.items() if p["payload"]["user_id"] != user_id}
            return httpx.Response(200, json={"result": {"status": "completed"}, "status": "ok"})
        if path.endswith("/points") and request.method == "PUT":
            if self.fail_upsert:
                return httpx.Response(400, json={"status": {"error": "wrong vector dimension"}})
            for point in body["points"]:
                self.points[point["id"]] = point
            return httpx.Response(200, json={"result": {"status": "completed"}, "status": "ok"})
        if path.endswith("/points/scroll"):
            user_id = body["filter"]["must"][0]["match"]["value"]
            points = [p for p in self.points.values() if p["payload"]["user_id"] == user_id]
            return httpx.Response(200, json={"result": {"points": points, "next_page_offset": None}, "status": "ok"})
        if path.endswith("/exists"):
            return httpx.Response(200, json={"result": {"exists": False}, "status": "ok"})
        return httpx.Response(200, json={"result": True, "status": "ok"})


@pytest.mark.asyncio
async def test_qdrant_replace_keeps_one_record_per_user(helper_config, client_env) -> None:
    stub = QdrantStub()
    client = RAGClientQdrant(helper_config)
    await boot_with_handler(client, stub)
    try:
        await client.do_replace("42", ["a", "b", "c"], [[1.0], [2.0], [3.0]], source_key="users/42/resume.pdf")
        await client.do_replace("7", ["other"], [[9.0]])
        await client.do_replace("42", ["new"], [[4.0]])

        record = await client.do_fetch_record("42")
        other = await client.do_fetch_record("7")
        missing = await client.do_fetch_record("1")
    finally:
        await client.close()

    assert record.text_chunks == ["new"]
    assert record.embeddings == [[4.0]]
    assert other.text_chunks == ["other"]
    assert missing is None
    assert sorted(point["payload"]["user_id"] for point in stub.points.values()) == ["42", "7"]


@pytest.mark.asyncio
async def test_qdrant_record_is_read_back_in_chunk_order(helper_config, client_env) -> None:
    stub = QdrantStub()
    client = RAGClientQdrant(helper_config)
    await boot_with_handler(client, stub)
    try:
        await client.do_insert("42", [f"chunk {i}" for i in range(12)], [[float(i)] for i in range(12)])
        record = await client.do_fetch_record("42")
    finally:
        await client.close()

    assert record.text_chunks == [f"chunk {i}" for i in range(12)]
    assert record.embeddings == [[float(i)] for i in range(12)]


@pytest.mark.asyncio
async def test_qdrant_interleaved_replaces_never_mix_documents(helper_config, client_env) -> None:
    stub = QdrantStub()
    client = RAGClientQdrant(helper_config)
    await boot_with_handler(client, stub)
    try:
        # two deliveries for one user: both delete, then both insert
        await client.do_delete_all("42")
        await client.do_delete_all("42")
        await client.do_insert("42", ["a0", "a1", "a2"], [[1.0], [2.0], [3.0]], source_key="users/42/a.pdf")
        await client.do_insert("42", ["b0", "b1"], [[4.0], [5.0]], source_key="users/42/b.pdf")
        record = await client.do_fetch_record("42")
    finally:
        await client.close()

    assert len(stub.points) == 5
    assert record.text_chunks == ["b0", "b1"]
    assert record.embeddings == [[4.0], [5.0]]


def test_newest_run_wins_regardless_of_arrival_order() -> None:
    def point(run_id: str, inserted_at: int, index: int) -> dict:
        return {"payload": {"run_id": run_id, "inserted_at": inserted_at, "chunk_index": index}}

    older = [point("a", 1, i) for i in range(3)]
    newer = [point("b", 2, i) for i in range(2)]

    assert select_newest_run(newer[::-1] + older) == newer
    assert select_newest_run(older + newer[1:]) == newer[1:]
    assert select_newest_run([]) == []


def test_point_ids_differ_between_inserts() -> None:
    assert make_point_id("42", "a", 0) == make_point_id("42", "a", 0)
    assert make_point_id("42", "a", 0) != make_point_id("42", "b", 0)


@pytest.mark.asyncio
async def test_qdrant_lenient_invalid_marker_is_stored_without_vector(helper_config, client_env) -> None:
    client_env.setenv("RAG_VALIDITY_POLICY", "lenient")
    stub = QdrantStub()
    client = RAGClientQdrant(helper_config)
    await boot_with_handler(client, stub)
    try:
        await client.do_replace("42", ["ok", "failed"], [[1.0], []])
        record = await client.do_fetch_record("42")
    finally:
        await client.close()

    assert client.validity_policy == ValidityPolicy.LENIENT
    failed = next(point for point in stub.points.values() if point["payload"]["chunk_index"] == 1)
    assert failed["vector"] == {}
    assert record.embeddings == [[1.0], []]


@pytest.mark.asyncio
async def test_qdrant_insert_error_raises_persistence_failed(helper_config, client_env) -> None:
    stub = QdrantStub()
    stub.fail_upsert = True
    client = RAGClientQdrant(helper_config)
    await boot_with_handler(client, stub)
    try:
        with pytest.raises(PersistenceFailed):
            await client.do_replace("42", ["a"], [[1.0]])
    finally:
        await client.close()

    # delete ran, insert failed: the user is left without a record
    assert stub.requests[0] == ("POST", "/collections/resumes/points/delete")


@pytest.mark.asyncio
async def test_qdrant_insert_rejects_misaligned_input(helper_config, client_env) -> None:
    client = RAGClientQdrant(helper_config)
    await boot_with_handler(client, QdrantStub())
    try:
        with pytest.raises(ValueError):
            await client.do_insert("42", ["a", "b"], [[1.0]])
    finally:
        await client.close()


@pytest.mark.asyncio
async def test_qdrant_creates_collection_with_named_vector(helper_config, client_env) -> None:
    bodies: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.content:
            bodies.append(json.loads(request.content))
        if request.url.path.endswith("/exists"):
            return httpx.Response(200, json={"result": {"exists": False}})
        return httpx.Response(200, json={"result": True})

    client = RAGClientQdrant(helper_config)
    await boot_with_handler(client, handler)
    try:
        assert await client.do_existence_check() is False
        await client.do_create_collection()
    finally:
        await client.close()

    assert bodies[0] == {"vectors": {"embedding": {"size": 1536, "distance": "Cosine"}}}
    assert bodies[1] == {"field_name": "user_id", "field_schema": "keyword"}


@pytest.mark.asyncio
async def test_healthcheck(helper_config, client_env) -> None:
    client = RAGClientQdrant(helper_config)
    await boot_with_handler(client, lambda request: httpx.Response(200 if request.url.path == "/healthz" else 404))
    try:
        assert await client.do_healthcheck() is True
    finally:
        await client.close()

    storage = StorageClientGcs(helper_config)
    # no probe endpoint: reported healthy without a request
    assert await storage.do_healthcheck() is True


@pytest.mark.asyncio
async def test_request_before_boot_fails(helper_config, client_env) -> None:
    with pytest.raises(RuntimeError):
        await RAGClientQdrant(helper_config).do_request(endpoint="/healthz")


##########################################
############### STARTUP ##################
##########################################


@pytest.mark.asyncio
async def test_startup_check_tolerates_storage_but_not_store_outage(helper_config, client_env) -> None:
    from server.api_server import check_connections

    def down(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    def up(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={})

    storage = StorageClientGcs(helper_config)
    extract = ExtractClientDocumentai(helper_config)
    embed = EmbedClientOpenai(helper_config)
    rag = RAGClientQdrant(helper_config)
    await boot_with_handler(storage, down)
    await boot_with_handler(extract, down)
    await boot_with_handler(embed, up)
    await boot_with_handler(rag, up)
    try:
        await check_connections(storage, extract, embed, rag)

        await rag.close()
        await boot_with_handler(rag, down)
        with pytest.raises(RuntimeError, match="rag"):
            await check_connections(storage, extract, embed, rag)
    finally:
        for client in (storage, extract, embed, rag):
            await client.close()
