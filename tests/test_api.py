from __future__ import annotations

from app.chat.orchestrator import FAILURE_MESSAGE, ChatOrchestrator
from app.dashboard.stats import DashboardStatsService
from app.main import AppComponents
from chain.chains import ChainId
from chain.types import BlockRecord, GatewayResult, IndexerBlocks
from tests.fakes import FakeGasSource, FakeGateway, FakeGenerator


class StaticIndexer:
    def __init__(self, result: GatewayResult) -> None:
        self.result = result

    async def get_recent_blocks_with_activity(self, chain, limit=5, window=50):
        return self.result


def _components(generator=None, indexer_result=None) -> AppComponents:
    orchestrator = ChatOrchestrator(
        gateway=FakeGateway(),
        generator=generator or FakeGenerator(),
        gas_source=FakeGasSource(),
    )
    indexer = StaticIndexer(indexer_result or GatewayResult.fail(ChainId.ETH, "down"))
    return AppComponents(orchestrator=orchestrator, dashboard=DashboardStatsService(indexer), closers=[])


def test_health(make_client):
    client = make_client(_components())
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_chat_message_returns_generated_answer(make_client):
    client = make_client(_components())

    resp = client.post("/api/chat/message", json={"message": "what is a rollup?"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["response"] == "generated answer"
    assert body["toolsUsed"] == []
    assert body["timestamp"]


def test_chat_message_gas_reports_tools(make_client):
    client = make_client(_components())

    resp = client.post("/api/chat/message", json={"message": "gas price on base"})

    assert resp.json()["toolsUsed"] == ["getGasFees"]


def test_chat_message_missing_message_is_400(make_client):
    client = make_client(_components())

    for payload in ({}, {"message": ""}, {"message": 42}):
        resp = client.post("/api/chat/message", json=payload)
        assert resp.status_code == 400
        assert resp.json() == {"success": False, "error": "Message is required and must be a string"}


def test_chat_message_terminal_failure_is_500(make_client):
    client = make_client(_components(generator=FakeGenerator(error=RuntimeError("boom"))))

    resp = client.post("/api/chat/message", json={"message": "hello"})

    assert resp.status_code == 500
    body = resp.json()
    assert body["success"] is False
    assert body["message"] == FAILURE_MESSAGE
    assert "boom" not in resp.text


def test_request_id_is_echoed(make_client):
    client = make_client(_components())

    resp = client.get("/health", headers={"X-Request-Id": "req-123"})
    assert resp.headers["X-Request-Id"] == "req-123"

    generated = client.get("/health").headers["X-Request-Id"]
    assert len(generated) == 32


def test_dashboard_stats_success(make_client):
    block = BlockRecord(
        number=10,
        timestamp="2024-05-01T12:00:00+00:00",
        hash="0xabc",
        gas_used=1,
        size=1,
        transaction_count=2,
        chain=ChainId.POLYGON,
    )
    result = GatewayResult.ok(ChainId.POLYGON, IndexerBlocks(ChainId.POLYGON, [block], 12))
    client = make_client(_components(indexer_result=result))

    resp = client.get("/api/dashboard/stats/polygon")

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["chain"] == "polygon"
    assert body["archiveHeight"] == 12
    assert body["blocks"][0]["transactionCount"] == 2
    assert body["metrics"]["blocksAnalyzed"] == 1


def test_dashboard_stats_failure_envelope(make_client):
    client = make_client(_components())

    resp = client.get("/api/dashboard/stats/eth")

    assert resp.status_code == 200
    assert resp.json() == {"success": False, "error": "Failed to fetch blocks from indexer", "blocks": []}


def test_build_components_from_settings(monkeypatch):
    from app.chat.gas import IndexerGasFeeSource
    from app.config import get_settings
    from app.main import build_components

    monkeypatch.setenv("GAS_FEE_SOURCE", "indexer")
    monkeypatch.setenv("DEFAULT_CHAIN", "base")
    monkeypatch.setenv("DASHBOARD_CACHE_TTL_S", "3")

    components = build_components(get_settings())

    assert isinstance(components.orchestrator.gas_source, IndexerGasFeeSource)
    assert components.orchestrator.default_chain == ChainId.BASE
    assert components.dashboard.ttl_s == 3.0
    assert len(components.closers) == 2
