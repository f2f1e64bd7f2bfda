import asyncio

from callboard.main import app
from callboard.services.events import EventPublisher


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_ready_checks_database(client):
    response = client.get("/ready")
    assert response.status_code == 200
    assert response.json() == {"status": "ready"}


def test_websocket_accepts_dashboard_without_redis(client):
    with client.websocket_connect("/ws") as websocket:
        websocket.send_text("ping")


class FakePubSub:
    def __init__(self, messages):
        self.messages = list(messages)
        self.subscribed = []
        self.unsubscribed = []
        self.closed = False

    async def subscribe(self, channel):
        self.subscribed.append(channel)

    async def get_message(self, ignore_subscribe_messages=True, timeout=1.0):
        if self.messages:
            return {"data": self.messages.pop(0)}
        await asyncio.sleep(0.01)
        return None

    async def unsubscribe(self, channel):
        self.unsubscribed.append(channel)

    async def close(self):
        self.closed = True


class FakeRedis:
    def __init__(self, pubsub):
        self._pubsub = pubsub

    def pubsub(self):
        return self._pubsub

    async def close(self):
        pass


def test_websocket_relays_events_and_releases_pubsub(client):
    pubsub = FakePubSub(['{"type": "call_inserted"}'])
    publisher = EventPublisher(None)
    publisher.client = FakeRedis(pubsub)
    app.state.publisher = publisher
    with client.websocket_connect("/ws") as websocket:
        assert websocket.receive_text() == '{"type": "call_inserted"}'
    assert pubsub.subscribed == ["events"]
    assert pubsub.unsubscribed == ["events"]
    assert pubsub.closed is True
