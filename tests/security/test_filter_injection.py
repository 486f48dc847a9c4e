"""Identity strings and task ids are escaped before they reach a filter query."""

from unittest.mock import AsyncMock

import pytest

from src.core import db_client
from src.services import comment_service, task_service


MALICIOUS = 'alice@example.com" || user != "'


@pytest.fixture
def capture_db_queries(monkeypatch):
    """Mocks db_client.list_records to capture query parameters."""
    mock_list = AsyncMock(return_value=[])
    monkeypatch.setattr("src.core.db_client.list_records", mock_list)
    return mock_list


@pytest.mark.unit
class TestFilterInjection:
    def test_sanitize_param_escapes_quotes(self):
        assert db_client.sanitize_param(MALICIOUS) == r'alice@example.com\" || user != \"'

    async def test_list_tasks_owner_is_escaped(self, capture_db_queries):
        await task_service.list_tasks(owner=MALICIOUS)

        filter_query = capture_db_queries.call_args.kwargs["filter_query"]
        assert filter_query == r'user = "alice@example.com\" || user != \""'

    async def test_list_comments_task_id_is_escaped(self, capture_db_queries):
        await comment_service.list_comments('t1" || taskId != "')

        filter_query = capture_db_queries.call_args.kwargs["filter_query"]
        assert filter_query == r'taskId = "t1\" || taskId != \""'

    def test_escaped_owner_parses_to_one_parameter(self):
        where, params = db_client.parse_filter(task_service.owner_filter(MALICIOUS))

        assert where == "user = ?"
        assert params == [MALICIOUS]
