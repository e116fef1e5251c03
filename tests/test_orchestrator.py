import asyncio

import pytest

from dynastylab.extractors.vision import VisionExtractor
from dynastylab.orchestrator import ScreenshotOrchestrator, related_screens, suggested_actions
from dynastylab.processors.router import RoutingError
from dynastylab.schemas.common import EventType, PipelineStage, ScreenType

BLOWOUT = {"opponent": "Florida State", "score": {"for": 52, "against": 24}, "result": "W"}


def _types(events):
    return [e.type for e in events]


def test_offline_roster_screenshot_end_to_end(with_stores):
    async def scenario(stores):
        orchestrator = ScreenshotOrchestrator(VisionExtractor(api_key=None), stores)
        events = []
        orchestrator.subscribe(events.append)
        result = await orchestrator.process_screenshot(b"roster.png")
        return orchestrator, events, result, await stores.players.list()

    orchestrator, events, result, players = with_stores(scenario)

    assert result.screen_type == ScreenType.ROSTER_OVERVIEW
    assert result.confidence_label == "High Confidence"
    assert result.detected_team == "Washington"
    assert len(result.extracted_data) == 4
    assert len(players) == 4
    assert result.triggered_content == []
    assert result.suggested_actions == suggested_actions(ScreenType.ROSTER_OVERVIEW)
    assert result.related_screens == [ScreenType.DEPTH_CHART, ScreenType.RECRUITING_BOARD]
    assert _types(events) == [EventType.SCREEN_IDENTIFIED, EventType.DATA_EXTRACTED, EventType.DATA_ROUTED]
    assert orchestrator.stage == PipelineStage.DONE


def test_skip_routing_leaves_stores_untouched(with_stores, scripted_extractor):
    extractor = scripted_extractor({b"game": (ScreenType.GAME_RESULT, BLOWOUT)})

    async def scenario(stores):
        orchestrator = ScreenshotOrchestrator(extractor, stores)
        events = []
        orchestrator.subscribe(events.append)
        result = await orchestrator.process_screenshot(b"game", skip_routing=True)
        return orchestrator, events, result, await stores.games.count()

    orchestrator, events, result, game_count = with_stores(scenario)

    assert game_count == 0
    assert result.triggered_content == []
    assert result.extracted_data["opponent"] == "Florida State"
    assert _types(events) == [EventType.SCREEN_IDENTIFIED, EventType.DATA_EXTRACTED]
    assert events[1].message == "Extracted data from game-result for Miami"
    assert orchestrator.stage == PipelineStage.AWAITING_REVIEW


def test_triggered_content_is_announced_last(with_stores, scripted_extractor):
    extractor = scripted_extractor({b"game": (ScreenType.GAME_RESULT, BLOWOUT)})

    async def scenario(stores):
        orchestrator = ScreenshotOrchestrator(extractor, stores)
        events = []
        orchestrator.subscribe(events.append)
        result = await orchestrator.process_screenshot(b"game")
        return events, result

    events, result = with_stores(scenario)

    assert extractor.calls == ["classify", "extract"]
    assert result.triggered_content == ["game-recap"]
    assert _types(events) == [
        EventType.SCREEN_IDENTIFIED,
        EventType.DATA_EXTRACTED,
        EventType.DATA_ROUTED,
        EventType.CONTENT_TRIGGERED,
    ]
    assert events[-1].data == ["game-recap"]
    assert all(e.screen_type == ScreenType.GAME_RESULT for e in events)


def test_commit_after_review(with_stores, scripted_extractor):
    extractor = scripted_extractor({b"game": (ScreenType.GAME_RESULT, BLOWOUT)})

    async def scenario(stores):
        orchestrator = ScreenshotOrchestrator(extractor, stores)
        result = await orchestrator.process_screenshot(b"game", skip_routing=True)
        reviewed = result.model_dump(mode="json")
        triggered = await orchestrator.route_extracted_data(result.screen_type, reviewed["extracted_data"])
        return result, triggered, await stores.games.list()

    result, triggered, games = with_stores(scenario)

    assert triggered == ["game-recap"]
    assert len(games) == 1
    assert games[0]["gameId"] == result.extracted_data["gameId"]
    assert "id" not in result.extracted_data


def test_failures_emit_an_error_event_and_propagate(with_stores, scripted_extractor):
    extractor = scripted_extractor({b"bad": RuntimeError("vision service exploded")})

    async def scenario(stores):
        orchestrator = ScreenshotOrchestrator(extractor, stores)
        events = []
        orchestrator.subscribe(events.append)
        with pytest.raises(RuntimeError, match="exploded"):
            await orchestrator.process_screenshot(b"bad")
        return orchestrator, events

    orchestrator, events = with_stores(scenario)

    assert _types(events) == [EventType.ERROR]
    assert "vision service exploded" in events[0].message
    assert orchestrator.stage == PipelineStage.ERROR


def test_malformed_commit_raises_routing_error(with_stores):
    async def scenario(stores):
        orchestrator = ScreenshotOrchestrator(VisionExtractor(api_key=None), stores)
        events = []
        orchestrator.subscribe(events.append)
        with pytest.raises(RoutingError):
            await orchestrator.route_extracted_data(ScreenType.COACH_INFO, {"name": "No Id"})
        return events, await stores.coaches.count()

    events, coach_count = with_stores(scenario)

    assert coach_count == 0
    assert _types(events) == [EventType.ERROR]


def test_unknown_screens_are_not_errors(with_stores, scripted_extractor):
    extractor = scripted_extractor({b"menu": (ScreenType.UNKNOWN, {})}, detected_team=None)

    async def scenario(stores):
        orchestrator = ScreenshotOrchestrator(extractor, stores)
        events = []
        orchestrator.subscribe(events.append)
        result = await orchestrator.process_screenshot(b"menu")
        return events, result

    events, result = with_stores(scenario)

    assert result.extracted_data == {}
    assert result.suggested_actions == ["Try a clearer screenshot", "Ensure UI elements are visible"]
    assert EventType.ERROR not in _types(events)


def test_unsubscribe_stops_future_deliveries(with_stores, scripted_extractor):
    extractor = scripted_extractor({b"game": (ScreenType.GAME_RESULT, BLOWOUT)})

    async def scenario(stores):
        orchestrator = ScreenshotOrchestrator(extractor, stores)
        kept, dropped = [], []
        orchestrator.subscribe(kept.append)
        unsubscribe = orchestrator.subscribe(dropped.append)
        await orchestrator.process_screenshot(b"game", skip_routing=True)
        unsubscribe()
        unsubscribe()
        await orchestrator.process_screenshot(b"game", skip_routing=True)
        return kept, dropped

    kept, dropped = with_stores(scenario)

    assert len(kept) == 4
    assert len(dropped) == 2


def test_late_subscribers_get_no_replay(with_stores, scripted_extractor):
    extractor = scripted_extractor({b"game": (ScreenType.GAME_RESULT, BLOWOUT)})

    async def scenario(stores):
        orchestrator = ScreenshotOrchestrator(extractor, stores)
        await orchestrator.process_screenshot(b"game", skip_routing=True)
        late = []
        orchestrator.subscribe(late.append)
        return late

    assert with_stores(scenario) == []


def test_event_stream_delivers_events_in_order(with_stores, scripted_extractor):
    extractor = scripted_extractor({b"game": (ScreenType.GAME_RESULT, BLOWOUT)})

    async def scenario(stores):
        orchestrator = ScreenshotOrchestrator(extractor, stores)
        callback_events = []
        orchestrator.subscribe(callback_events.append)
        async with orchestrator.events() as stream:
            await orchestrator.process_screenshot(b"game")
            stream.close()
            streamed = [event async for event in stream]
        return callback_events, streamed

    callback_events, streamed = with_stores(scenario)

    assert streamed == callback_events
    assert len(streamed) == 4


def test_event_stream_drops_oldest_when_full(with_stores, scripted_extractor):
    extractor = scripted_extractor({b"game": (ScreenType.GAME_RESULT, BLOWOUT)})

    async def scenario(stores):
        orchestrator = ScreenshotOrchestrator(extractor, stores)
        stream = orchestrator.events(maxsize=2)
        await orchestrator.process_screenshot(b"game")
        stream.close()
        return [event.type async for event in stream]

    assert with_stores(scenario) == [EventType.DATA_ROUTED, EventType.CONTENT_TRIGGERED]


def test_lookup_tables_default_to_empty():
    assert suggested_actions(ScreenType.TOP25_RANKINGS) == []
    assert suggested_actions(ScreenType.PLAYER_STATS) == []
    assert related_screens(ScreenType.PLAYER_STATS) == []
    assert related_screens(ScreenType.UNKNOWN) == []
    assert related_screens(ScreenType.COACH_INFO) == [ScreenType.SEASON_STANDINGS, ScreenType.TROPHY_CASE]


def test_lookup_tables_return_copies():
    suggested_actions(ScreenType.SCHEDULE).append("mutated")

    assert "mutated" not in suggested_actions(ScreenType.SCHEDULE)


def test_stages_progress_in_order(with_stores, scripted_extractor):
    extractor = scripted_extractor({b"game": (ScreenType.GAME_RESULT, BLOWOUT)})

    async def scenario(stores):
        orchestrator = ScreenshotOrchestrator(extractor, stores)
        seen = []
        original = orchestrator._set_stage

        def record(stage):
            seen.append(stage)
            original(stage)

        orchestrator._set_stage = record
        await orchestrator.process_screenshot(b"game")
        return seen

    assert with_stores(scenario) == [
        PipelineStage.CLASSIFYING,
        PipelineStage.EXTRACTING,
        PipelineStage.ROUTING,
        PipelineStage.TRIGGER_EVALUATION,
        PipelineStage.DONE,
    ]


def test_each_result_carries_its_own_stage(with_stores, scripted_extractor):
    extractor = scripted_extractor({b"game": (ScreenType.GAME_RESULT, BLOWOUT)})

    async def scenario(stores):
        orchestrator = ScreenshotOrchestrator(extractor, stores)
        return await asyncio.gather(
            orchestrator.process_screenshot(b"game", skip_routing=True),
            orchestrator.process_screenshot(b"game"),
        )

    reviewed, routed = with_stores(scenario)

    assert reviewed.stage == PipelineStage.AWAITING_REVIEW
    assert routed.stage == PipelineStage.DONE
    assert routed.triggered_content == ["game-recap"]
