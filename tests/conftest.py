import asyncio
import inspect
import os
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault('DATABASE_URL', 'sqlite:///:memory:')
os.environ.setdefault('ANTHROPIC_API_KEY', 'x')
os.environ.setdefault('APP_ENV', 'test')

from pressroom.config import Settings
from pressroom.database import build_engine, build_session_factory, init_db
from pressroom.services.template_registry import TemplateRegistry
from pressroom.services.workflow_engine import build_workflow_engine
from pressroom.services.workflow_store import WorkflowStore


class FakeCompletionClient:
    """Replays scripted replies in order and records every request.

    A reply may be a string, an exception instance (raised), or a callable
    taking the request and returning a string or an awaitable.
    """

    def __init__(self, replies=None, default='Generated content'):
        self.replies = list(replies or [])
        self.default = default
        self.requests = []

    def queue(self, *replies):
        self.replies.extend(replies)

    async def complete(self, request):
        self.requests.append(request)
        reply = self.replies.pop(0) if self.replies else self.default
        if isinstance(reply, BaseException):
            raise reply
        if callable(reply):
            reply = reply(request)
            if inspect.isawaitable(reply):
                reply = await reply
        return reply


def slow_reply(seconds, text='{}'):
    async def _reply(_request):
        await asyncio.sleep(seconds)
        return text

    return _reply


class RecordingBroadcaster:
    def __init__(self):
        self.events = []

    async def broadcast_to_thread(self, thread_id, event_type, data):
        self.events.append((thread_id, event_type, data))


def make_settings(**overrides):
    values = {
        'DATABASE_URL': 'sqlite:///:memory:',
        'APP_ENV': 'test',
        'ANTHROPIC_API_KEY': 'x',
        'COMPLETION_TIMEOUT_SECONDS': 2,
        'MAX_AUTO_CHAIN_DEPTH': 5,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def store(settings):
    engine = build_engine(settings)
    init_db(engine)
    yield WorkflowStore(build_session_factory(engine))
    engine.dispose()


@pytest.fixture
def fake_client():
    return FakeCompletionClient()


@pytest.fixture
def broadcaster():
    return RecordingBroadcaster()


@pytest.fixture
def make_engine(settings, store, fake_client, broadcaster):
    def _make(templates=None, **setting_overrides):
        registry = TemplateRegistry(templates) if templates is not None else None
        engine_settings = make_settings(**setting_overrides) if setting_overrides else settings
        return build_workflow_engine(
            engine_settings,
            store,
            fake_client,
            registry=registry,
            broadcaster=broadcaster,
        )

    return _make


@pytest.fixture
def engine(make_engine):
    return make_engine()
