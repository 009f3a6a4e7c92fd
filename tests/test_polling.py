import asyncio

from backend.client.api import ApiClientError
from backend.client.polling import (
    PendingCountWatcher,
    parcel_alert_message,
    should_watch,
    visitor_alert_message,
    watch_parcels,
    watch_visitors,
)


class FakeCounts:
    """Replays a scripted sequence of counts (or errors) for one resident."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = []

    async def __call__(self, resident_id):
        self.calls.append(resident_id)
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return result


def _watcher(fetch, alerts, **options):
    return PendingCountWatcher(
        "parcel",
        7,
        fetch,
        parcel_alert_message,
        on_alert=lambda message, count: alerts.append((message, count)),
        **options,
    )


def test_first_tick_is_a_baseline():
    alerts = []
    watcher = _watcher(FakeCounts(3, 3, 5, 2, 3), alerts)

    async def run():
        return [await watcher.tick() for _ in range(5)]

    assert asyncio.run(run()) == [3, 3, 5, 2, 3]
    assert alerts == [("2 new parcels pending", 5), ("New parcel pending", 3)]
    assert watcher.previous_count == 3


def test_alert_on_first_reports_existing_items():
    alerts = []
    watcher = _watcher(FakeCounts(1), alerts, alert_on_first=True)
    asyncio.run(watcher.tick())
    assert alerts == [("New parcel pending", 1)]

    empty_alerts = []
    empty = _watcher(FakeCounts(0), empty_alerts, alert_on_first=True)
    asyncio.run(empty.tick())
    assert empty_alerts == []


def test_fetch_errors_are_tolerated():
    alerts = []
    fetch = FakeCounts(1, ApiClientError("boom", status_code=500), 2)
    watcher = _watcher(fetch, alerts)

    async def run():
        return [await watcher.tick() for _ in range(3)]

    assert asyncio.run(run()) == [1, None, 2]
    assert watcher.previous_count == 2
    assert alerts == [("New parcel pending", 2)]
    assert fetch.calls == [7, 7, 7]


def test_start_polls_immediately_and_stop_cancels():
    alerts = []
    fetch = FakeCounts(0, 1)
    watcher = _watcher(fetch, alerts, interval=0.01)

    async def run():
        watcher.start()
        assert watcher.running
        await asyncio.sleep(0.1)
        await watcher.stop()
        assert not watcher.running
        calls = len(fetch.calls)
        await asyncio.sleep(0.05)
        return calls

    calls_at_stop = asyncio.run(run())
    assert calls_at_stop >= 2
    assert len(fetch.calls) == calls_at_stop
    assert alerts[0] == ("New parcel pending", 1)


def test_watchers_are_independent():
    visitor_alerts, parcel_alerts = [], []
    visitors = PendingCountWatcher(
        "visitor",
        7,
        FakeCounts(0, 1),
        visitor_alert_message,
        on_alert=lambda message, count: visitor_alerts.append(message),
    )
    parcels = _watcher(FakeCounts(4, 4), parcel_alerts)

    async def run():
        await asyncio.gather(visitors.tick(), parcels.tick())
        await asyncio.gather(visitors.tick(), parcels.tick())

    asyncio.run(run())
    assert visitor_alerts == ["New visitor awaiting approval"]
    assert parcel_alerts == []


class StubClient:
    async def pending_visitor_count(self, resident_id):
        return 0

    async def pending_parcel_count(self, resident_id):
        return 0


def test_only_residents_get_watchers():
    client = StubClient()
    resident = {"id": 3, "role": "resident"}

    assert should_watch(resident)
    assert not should_watch({"id": 1, "role": "guard"})
    assert not should_watch(None)
    assert watch_visitors(client, {"id": 1, "role": "admin"}) is None
    assert watch_parcels(client, {"id": 1, "role": "guard"}) is None

    visitor_watcher = watch_visitors(client, resident, interval=5)
    parcel_watcher = watch_parcels(client, resident)
    assert visitor_watcher.resident_id == 3
    assert visitor_watcher.interval == 5
    assert parcel_watcher.interval == 30
    assert visitor_watcher is not parcel_watcher


def test_unexpected_fetch_errors_keep_the_loop_alive():
    alerts = []
    fetch = FakeCounts(0, KeyError("count"), 1)
    watcher = _watcher(fetch, alerts, interval=0.01)

    async def run():
        watcher.start()
        await asyncio.sleep(0.1)
        still_running = watcher.running
        await watcher.stop()
        return still_running

    assert asyncio.run(run()) is True
    assert len(fetch.calls) >= 3
    assert watcher.previous_count == 1
    assert alerts == [("New parcel pending", 1)]
