"""
Polling reads against a lagging list index
"""

import pytest

from graph_harness.core.polling import poll_until
from graph_harness.models.selector import by_id
from graph_harness.reporting.tags import Tag
from graph_harness.utils.error_handling import NotFoundError, PollingTimeoutError

pytestmark = pytest.mark.tag(Tag.FLAKY)


async def test_created_entity_becomes_visible(customers, fake_graph):
    fake_graph.list_lag = 2
    created = await customers.create()

    async def visible():
        found = await customers.query(by_id(created["id"]))
        assert found, f"customer {created['id']} not yet listed"
        return found[0]

    instance = await poll_until(visible, timeout=2, interval=0.01)
    assert instance["id"] == created["id"]


async def test_query_random_fails_before_index_catches_up(customers, fake_graph):
    fake_graph.list_lag = 1
    with pytest.raises(NotFoundError, match="not queryable"):
        await customers.query_random()


async def test_never_visible_reports_last_failure(customers, fake_graph):
    fake_graph.list_lag = 10_000
    created = await customers.create()

    async def visible():
        return bool(await customers.query(by_id(created["id"])))

    with pytest.raises(PollingTimeoutError) as exc_info:
        await poll_until(visible, timeout=0.2, interval=0.02, description="customer listed")
    assert "customer listed" in str(exc_info.value)
    assert exc_info.value.attempts > 1
