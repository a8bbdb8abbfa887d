import pytest

from pizzeria_client.client import PizzeriaClient
from pizzeria_client.config import ClientConfig
from pizzeria_client.errors import PublishError, SubscriptionError
from pizzeria_client.models import AWAITING_ACCEPTANCE, OrderLine, OrderPhase


class FakeMqtt:
    """In-memory stand-in for MqttClient that records what the client does."""

    def __init__(self) -> None:
        self.handlers = []
        self.subscribed: list[str] = []
        self.unsubscribed: list[str] = []
        self.published: list[tuple[str, str]] = []
        self.started = False
        self.connected = False
        self.fail_publish = False
        self.fail_subscribe_suffix: str | None = None

    def start(self) -> None:
        self.started = True
        self.connected = True

    def stop(self) -> None:
        self.started = False
        self.connected = False

    def add_handler(self, handler) -> None:
        self.handlers.append(handler)

    def subscribe(self, topic, qos=None) -> None:
        if self.fail_subscribe_suffix and topic.endswith(self.fail_subscribe_suffix):
            raise SubscriptionError(topic, "no connection")
        self.subscribed.append(topic)

    def unsubscribe(self, topic) -> None:
        self.unsubscribed.append(topic)

    def publish(self, topic, payload, qos=None) -> None:
        if self.fail_publish:
            raise PublishError(topic, "not connected")
        self.published.append((topic, payload))

    def deliver(self, topic: str, payload: str) -> None:
        for h in self.handlers:
            h(topic, payload)


@pytest.fixture
def mqtt():
    return FakeMqtt()


@pytest.fixture
def client(mqtt):
    c = PizzeriaClient(mqtt=mqtt, config=ClientConfig())
    c.start()
    return c


ORDER = [OrderLine("margherita", 2), OrderLine("pepperoni", 1)]


def test_start_subscribes_to_menu(client, mqtt):
    assert mqtt.started
    assert mqtt.subscribed == ["bcast/menu"]


def test_request_menu_publishes_empty_payload(client, mqtt):
    client.request_menu()
    client.request_menu()
    assert mqtt.published == [("bcast/i_am_ungry", ""), ("bcast/i_am_ungry", "")]


def test_menu_broadcast_replaces_menu(client, mqtt):
    mqtt.deliver("bcast/menu", "margherita~CHEESE,TOMATO~8\npepperoni~CHEESE,PEPPERONI~9")
    assert [p.price for p in client.snapshot().menu] == [8, 9]

    mqtt.deliver("bcast/menu", "")
    assert client.snapshot().menu == ()


def test_unusable_menu_broadcast_keeps_previous_menu(client, mqtt):
    mqtt.deliver("bcast/menu", "margherita~CHEESE,TOMATO~8")
    mqtt.deliver("bcast/menu", "garbage")
    assert [p.name for p in client.snapshot().menu] == ["margherita"]


def test_place_empty_order_is_noop(client, mqtt):
    before = client.snapshot()
    assert client.place_order([]) is None
    assert client.snapshot() == before
    assert mqtt.subscribed == ["bcast/menu"]
    assert mqtt.published == []


def test_place_order_subscribes_and_publishes(client, mqtt):
    order_id = client.place_order(ORDER)

    assert order_id
    snap = client.snapshot()
    assert snap.order_active
    assert snap.order_id == order_id
    assert snap.status == AWAITING_ACCEPTANCE
    assert mqtt.subscribed[1:] == [
        f"orders/{order_id}/status",
        f"orders/{order_id}/delivery",
        f"orders/{order_id}/cancelled",
    ]
    assert mqtt.published == [(f"orders/{order_id}", "margherita,2~pepperoni,1")]


def test_new_order_drops_previous_order_topics(client, mqtt):
    first = client.place_order(ORDER)
    second = client.place_order([OrderLine("calzone", 1)])

    assert first != second
    assert mqtt.unsubscribed == [
        f"orders/{first}/status",
        f"orders/{first}/delivery",
        f"orders/{first}/cancelled",
    ]
    assert client.snapshot().order_id == second


def test_publish_failure_discards_order(client, mqtt):
    mqtt.fail_publish = True
    with pytest.raises(PublishError):
        client.place_order(ORDER)

    snap = client.snapshot()
    assert snap.phase is OrderPhase.NONE
    assert snap.order_id is None
    assert len(mqtt.unsubscribed) == 3


def test_status_message_sets_status_text(client, mqtt):
    order_id = client.place_order(ORDER)
    mqtt.deliver(f"orders/{order_id}/status", "Your pizzas are in the oven")
    assert client.snapshot().status == "Your pizzas are in the oven"


def test_status_for_unknown_order_is_ignored(client, mqtt):
    client.place_order(ORDER)
    mqtt.deliver("orders/someone-else/status", "not yours")
    assert client.snapshot().status == AWAITING_ACCEPTANCE


def test_delivery_then_confirm(client, mqtt):
    order_id = client.place_order(ORDER)
    mqtt.deliver(f"orders/{order_id}/delivery", "3")

    snap = client.snapshot()
    assert snap.order_delivered
    assert snap.status == "Number of pizzas delivered: 3"

    client.confirm_delivery()
    snap = client.snapshot()
    assert snap.phase is OrderPhase.NONE
    assert snap.order_id is None
    assert f"orders/{order_id}/delivery" in mqtt.unsubscribed


def test_cancellation_then_confirm(client, mqtt):
    order_id = client.place_order(ORDER)
    mqtt.deliver(f"orders/{order_id}/cancelled", "We ran out of cheese")

    snap = client.snapshot()
    assert snap.order_cancelled
    assert not snap.order_active
    assert snap.order_id is None
    assert snap.status == "We ran out of cheese"
    assert f"orders/{order_id}/cancelled" in mqtt.unsubscribed

    client.confirm_cancellation()
    assert client.snapshot().phase is OrderPhase.NONE


def test_custom_topics_from_config(mqtt):
    config = ClientConfig(
        order_topic="shop/orders/",
        menu_request_topic="shop/hungry",
        menu_response_topic="shop/menu",
    )
    c = PizzeriaClient(mqtt=mqtt, config=config)
    c.start()
    c.request_menu()
    order_id = c.place_order(ORDER)
    mqtt.deliver(f"shop/orders/{order_id}/status", "accepted")

    assert mqtt.subscribed[0] == "shop/menu"
    assert mqtt.published[0] == ("shop/hungry", "")
    assert mqtt.published[1][0] == f"shop/orders/{order_id}"
    assert c.snapshot().status == "accepted"



def test_place_order_while_disconnected_keeps_current_order(client, mqtt):
    first = client.place_order(ORDER)
    subscribed_before = list(mqtt.subscribed)
    mqtt.connected = False

    with pytest.raises(PublishError):
        client.place_order([OrderLine("calzone", 1)])

    snap = client.snapshot()
    assert snap.order_id == first
    assert snap.phase is OrderPhase.PENDING
    assert mqtt.subscribed == subscribed_before
    assert mqtt.unsubscribed == []
    assert len(mqtt.published) == 1


def test_subscribe_failure_keeps_previous_order_and_its_topics(client, mqtt):
    first = client.place_order(ORDER)
    mqtt.fail_subscribe_suffix = "/delivery"

    with pytest.raises(SubscriptionError):
        client.place_order([OrderLine("calzone", 1)])

    assert client.snapshot().order_id == first
    # Only the one new topic that did get subscribed is released again.
    assert len(mqtt.unsubscribed) == 1
    assert mqtt.unsubscribed[0].endswith("/status")
    assert not any(t.startswith(f"orders/{first}/") for t in mqtt.unsubscribed)
    assert len(mqtt.published) == 1


def test_publish_failure_restores_previous_order(client, mqtt):
    first = client.place_order(ORDER)
    mqtt.deliver(f"orders/{first}/status", "in the oven")
    mqtt.fail_publish = True

    with pytest.raises(PublishError):
        client.place_order([OrderLine("calzone", 1)])

    snap = client.snapshot()
    assert snap.order_id == first
    assert snap.phase is OrderPhase.UPDATED
    assert snap.status == "in the oven"
    assert not any(t.startswith(f"orders/{first}/") for t in mqtt.unsubscribed)
    assert len(mqtt.unsubscribed) == 3

    # The previous order is still followed.
    mqtt.deliver(f"orders/{first}/delivery", "3")
    assert client.snapshot().order_delivered
