from priceglass.events import COUNTRY_CHANGED, EventBus


def test_listeners_called_in_order():
    bus = EventBus()
    calls = []
    bus.subscribe(COUNTRY_CHANGED, lambda d: calls.append(("first", d)))
    bus.subscribe(COUNTRY_CHANGED, lambda d: calls.append(("second", d)))

    bus.publish(COUNTRY_CHANGED, "US")

    assert calls == [("first", "US"), ("second", "US")]


def test_unsubscribe():
    bus = EventBus()
    calls = []
    unsubscribe = bus.subscribe(COUNTRY_CHANGED, calls.append)
    unsubscribe()

    bus.publish(COUNTRY_CHANGED, "US")
    assert calls == []


def test_failing_listener_does_not_block_others():
    bus = EventBus()
    calls = []

    def broken(_):
        raise RuntimeError("boom")

    bus.subscribe(COUNTRY_CHANGED, broken)
    bus.subscribe(COUNTRY_CHANGED, calls.append)

    bus.publish(COUNTRY_CHANGED, "JP")
    assert calls == ["JP"]
