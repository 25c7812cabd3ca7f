"""Request context bound onto log lines."""

import pytest
import structlog

from commerce.utils.logging import add_context, clear_context


@pytest.fixture(autouse=True)
def _fresh_context():
    clear_context()
    yield
    clear_context()


class TestLogContext:
    def test_bound_values_are_visible(self):
        add_context(request_id="req-1", path="/orders")
        assert structlog.contextvars.get_contextvars() == {"request_id": "req-1", "path": "/orders"}

    def test_later_binding_adds_to_the_context(self):
        add_context(request_id="req-1")
        add_context(user_id="user-1")
        assert structlog.contextvars.get_contextvars() == {"request_id": "req-1", "user_id": "user-1"}

    def test_clear_drops_everything(self):
        add_context(request_id="req-1")
        clear_context()
        assert structlog.contextvars.get_contextvars() == {}
