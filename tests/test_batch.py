from dynastylab.batch import BatchItem, ItemStatus, commit_batch, process_batch
from dynastylab.orchestrator import ScreenshotOrchestrator
from dynastylab.schemas.common import EventType, ScreenType

SCREENS = {
    b"standings": (ScreenType.SEASON_STANDINGS, {"teamName": "Miami", "overallRecord": "10-0", "ranking": 4}),
    b"broken": RuntimeError("unreadable upload"),
    b"recruits": (ScreenType.RECRUITING_BOARD, {"commits": [{"name": "Five Star", "stars": 5}]}),
}


def _items():
    return [BatchItem(name=name.decode() + ".png", image=name) for name in SCREENS]


def test_review_mode_stores_nothing_until_commit(with_stores, scripted_extractor):
    extractor = scripted_extractor(SCREENS)

    async def scenario(stores):
        orchestrator = ScreenshotOrchestrator(extractor, stores)
        report = await process_batch(orchestrator, _items(), auto_approve=False)
        before = (await stores.seasons.count(), await stores.recruits.count())
        triggered = await commit_batch(orchestrator, report.results)
        after = (await stores.seasons.count(), await stores.recruits.count())
        return report, before, triggered, after

    report, before, triggered, after = with_stores(scenario)

    assert [i.status for i in report.items] == [ItemStatus.COMPLETED, ItemStatus.ERROR, ItemStatus.COMPLETED]
    assert report.awaiting_review
    assert report.failed[0].error == "unreadable upload"
    assert before == (0, 0)
    assert triggered == [["ranking-analysis"], ["recruiting-update"]]
    assert after == (1, 1)


def test_auto_approve_routes_each_item_once(with_stores, scripted_extractor):
    extractor = scripted_extractor(SCREENS)

    async def scenario(stores):
        orchestrator = ScreenshotOrchestrator(extractor, stores)
        report = await process_batch(orchestrator, _items(), auto_approve=True)
        return report, await stores.seasons.count(), await stores.recruits.count()

    report, seasons, recruits = with_stores(scenario)

    assert not report.awaiting_review
    assert len(report.completed) == 2
    assert report.results[1].triggered_content == ["recruiting-update"]
    assert (seasons, recruits) == (1, 1)


def test_each_item_captures_only_its_own_events(with_stores, scripted_extractor):
    extractor = scripted_extractor(SCREENS)

    async def scenario(stores):
        orchestrator = ScreenshotOrchestrator(extractor, stores)
        report = await process_batch(orchestrator, _items(), auto_approve=False)
        return report, orchestrator._subscribers

    report, subscribers = with_stores(scenario)

    standings, broken, recruits = report.items
    assert [e.type for e in standings.events] == [EventType.SCREEN_IDENTIFIED, EventType.DATA_EXTRACTED]
    assert [e.type for e in broken.events] == [EventType.ERROR]
    assert all(e.screen_type == ScreenType.RECRUITING_BOARD for e in recruits.events)
    assert subscribers == []


def test_items_that_are_not_pending_are_skipped(with_stores, scripted_extractor):
    extractor = scripted_extractor(SCREENS)
    items = _items()
    items[0].status = ItemStatus.COMPLETED

    async def scenario(stores):
        orchestrator = ScreenshotOrchestrator(extractor, stores)
        return await process_batch(orchestrator, items, auto_approve=False)

    report = with_stores(scenario)

    assert report.items[0].result is None
    assert report.items[0].events == []
    assert extractor.calls.count("classify") == 2


def test_commit_accepts_serialized_results(with_stores, scripted_extractor):
    extractor = scripted_extractor(SCREENS)

    async def scenario(stores):
        orchestrator = ScreenshotOrchestrator(extractor, stores)
        report = await process_batch(orchestrator, _items()[:1], auto_approve=False)
        serialized = [r.model_dump(mode="json") for r in report.results]
        triggered = await commit_batch(orchestrator, serialized)
        return triggered, await stores.seasons.get_current()

    triggered, season = with_stores(scenario)

    assert triggered == [["ranking-analysis"]]
    assert season["overallRecord"] == {"wins": 10, "losses": 0}
