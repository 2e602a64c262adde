import asyncio
import dataclasses
import logging

import pytest

from spawnwatch.dispatch.notify import LABEL_FILENAME, NotificationDispatcher
from spawnwatch.io.models import ImageEvent, MatchResult
from spawnwatch.store.subscriptions import SubscriptionStore


@pytest.fixture
def store(tmp_path):
    store = SubscriptionStore.open(tmp_path / "pings.json")
    store.add_interest("u2", ["Pika"])
    store.add_interest("u1", ["Pika", "Mew"])
    return store


def _event(context="guild-1"):
    return ImageEvent(
        author_id="spawner",
        context_id=context,
        title="A wild one appeared!",
        image_url="https://x.test/a.png",
        message_id="m-1",
    )


def test_no_match_sends_nothing(store, transport, renderer, settings):
    dispatcher = NotificationDispatcher(store, transport, renderer, settings)
    outcome = asyncio.run(dispatcher.dispatch(_event(), MatchResult()))
    assert outcome is None
    assert transport.sent == []
    assert renderer.rendered == []


def test_match_sends_label_and_pings(store, transport, renderer, settings):
    dispatcher = NotificationDispatcher(store, transport, renderer, settings)
    outcome = asyncio.run(dispatcher.dispatch(_event(), MatchResult("Pika", 12)))

    assert outcome.watchers == ["u1", "u2"]
    assert len(transport.sent) == 2
    reply_to, reply = transport.sent[0]
    assert reply_to == "m-1"
    assert reply.attachment == b"PNG:Pika"
    assert reply.filename == LABEL_FILENAME
    _, ping = transport.sent[1]
    assert ping.text == "Pika spotted! <@u1> <@u2>"
    assert outcome.reply == "msg-1"
    assert outcome.ping == "msg-2"


def test_match_without_watchers_sends_only_reply(store, transport, renderer, settings):
    dispatcher = NotificationDispatcher(store, transport, renderer, settings)
    outcome = asyncio.run(dispatcher.dispatch(_event(), MatchResult("Onix", 0)))
    assert outcome.watchers == []
    assert outcome.ping is None
    assert len(transport.sent) == 1


def test_text_only_context_gets_plain_reply(store, transport, renderer, settings):
    dispatcher = NotificationDispatcher(store, transport, renderer, settings)
    asyncio.run(dispatcher.dispatch(_event(context="quiet-guild"), MatchResult("Mew", 1)))
    _, reply = transport.sent[0]
    assert reply.text == "Mew"
    assert reply.attachment is None
    assert renderer.rendered == []


def test_render_failure_falls_back_to_text(store, transport, settings):
    class BrokenRenderer:
        def render(self, text):
            raise OSError("background missing")

    dispatcher = NotificationDispatcher(store, transport, BrokenRenderer(), settings)
    asyncio.run(dispatcher.dispatch(_event(), MatchResult("Mew", 1)))
    assert transport.sent[0][1].text == "Mew"


def test_reply_is_deleted_after_ttl(store, transport, renderer, settings):
    settings = dataclasses.replace(settings, reply_ttl=0.01)
    dispatcher = NotificationDispatcher(store, transport, renderer, settings)

    async def scenario():
        outcome = await dispatcher.dispatch(_event(), MatchResult("Pika", 3))
        assert dispatcher.pending == 1
        await asyncio.sleep(0.05)
        return outcome

    outcome = asyncio.run(scenario())
    assert transport.deleted == [outcome.reply]
    assert dispatcher.pending == 0


def test_delete_failure_is_swallowed(store, transport, renderer, settings, caplog):
    settings = dataclasses.replace(settings, reply_ttl=0.0)
    transport.fail_delete = True
    dispatcher = NotificationDispatcher(store, transport, renderer, settings)

    async def scenario():
        await dispatcher.dispatch(_event(), MatchResult("Mew", 3))
        await asyncio.sleep(0.01)

    with caplog.at_level(logging.WARNING, logger="spawnwatch.dispatch.notify"):
        asyncio.run(scenario())
    assert transport.deleted == []
    assert "Failed to delete reply" in caplog.text


def test_cancel_pending_stops_scheduled_delete(store, transport, renderer, settings):
    settings = dataclasses.replace(settings, reply_ttl=10.0)
    dispatcher = NotificationDispatcher(store, transport, renderer, settings)

    async def scenario():
        await dispatcher.dispatch(_event(), MatchResult("Mew", 3))
        dispatcher.cancel_pending()
        await asyncio.sleep(0.01)

    asyncio.run(scenario())
    assert transport.deleted == []
    assert dispatcher.pending == 0
