"""
pytest configuration and fixtures for the harness test suite
Every client talks to an in-memory graph API through httpx's ASGI transport.
"""

import httpx
import pytest

from graph_harness.config.settings import get_config
from graph_harness.contracts import CUSTOMER, ITEM, SALES_ORDER, SITE
from graph_harness.core.entity_node import EntityNode
from graph_harness.core.graph_client import GraphClient
from tests.support.fake_api import FakeGraph, create_app


class SpyClient:
    """Wraps a GraphClient and records every execute call"""

    def __init__(self, client: GraphClient):
        self.client = client
        self.calls = []

    async def execute(self, document, variables=None, operation="query", operation_name=None):
        self.calls.append({"operation": operation, "operation_name": operation_name, "variables": variables})
        return await self.client.execute(document, variables, operation=operation, operation_name=operation_name)


@pytest.fixture
def fake_graph():
    """Fresh in-memory store per test"""
    return FakeGraph()


@pytest.fixture
def harness_config():
    return get_config(
        api_base_url="http://fake-graph",
        api_token=None,
        oauth_private_key="",
        poll_interval=0.05,
        max_retries=2,
        test_data_prefix="QA",
    )


@pytest.fixture
def graph_client(harness_config, fake_graph):
    client = GraphClient(harness_config, transport=httpx.ASGITransport(app=create_app(fake_graph)))
    client.retry_delay = 0
    return client


@pytest.fixture
def spy_client(graph_client):
    return SpyClient(graph_client)


@pytest.fixture
def customers(graph_client):
    return EntityNode(CUSTOMER, graph_client)


@pytest.fixture
def items(graph_client):
    return EntityNode(ITEM, graph_client)


@pytest.fixture
def sites(graph_client):
    return EntityNode(SITE, graph_client)


@pytest.fixture
def sales_orders(graph_client):
    return EntityNode(SALES_ORDER, graph_client)
