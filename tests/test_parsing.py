from dynastylab.extractors.parsing import (
    parse_direct,
    parse_embedded,
    parse_fenced,
    parse_model_json,
)


def test_plain_json_object_parses_directly():
    assert parse_model_json('{"screenType": "schedule", "confidence": 0.8}') == {
        "screenType": "schedule",
        "confidence": 0.8,
    }


def test_fenced_reply_is_unwrapped():
    reply = '```json\n{"ranking": 7}\n```'

    assert parse_direct(reply) is None
    assert parse_fenced(reply) == {"ranking": 7}
    assert parse_model_json(reply) == {"ranking": 7}


def test_fence_without_language_tag():
    assert parse_model_json('```\n{"hotSeat": true}\n```') == {"hotSeat": True}


def test_object_embedded_in_prose_is_recovered():
    reply = 'Sure! Here is the data you asked for: {"wins": 9, "losses": 1} Let me know if you need more.'

    assert parse_embedded(reply) == {"wins": 9, "losses": 1}
    assert parse_model_json(reply) == {"wins": 9, "losses": 1}


def test_arrays_only_accepted_when_allowed():
    reply = '[{"name": "D.Mills"}]'

    assert parse_model_json(reply) is None
    assert parse_model_json(reply, allow_array=True) == [{"name": "D.Mills"}]


def test_array_embedded_in_prose_when_allowed():
    reply = 'The roster shows: [{"name": "A"}, {"name": "B"}]'

    assert parse_model_json(reply, allow_array=True) == [{"name": "A"}, {"name": "B"}]


def test_scalars_are_rejected():
    assert parse_model_json("42") is None
    assert parse_model_json('"roster-overview"') is None


def test_unrecoverable_replies_return_none():
    assert parse_model_json("I could not read this screenshot.") is None
    assert parse_model_json("{not json at all}") is None
    assert parse_model_json("") is None
    assert parse_model_json(None) is None


def test_custom_strategy_order_is_respected():
    reply = 'prefix {"a": 1}'

    assert parse_model_json(reply, strategies=(parse_direct, parse_fenced)) is None
    assert parse_model_json(reply, strategies=(parse_embedded,)) == {"a": 1}


def test_bracketed_label_before_object_is_skipped():
    reply = '[Game Result] {"opponent": "Florida State", "score": {"for": 45, "against": 17}}'

    expected = {"opponent": "Florida State", "score": {"for": 45, "against": 17}}
    assert parse_model_json(reply) == expected
    assert parse_model_json(reply, allow_array=True) == expected


def test_earliest_block_wins_when_both_parse():
    reply = 'Rankings: [{"rank": 1}]'

    assert parse_embedded(reply, allow_array=True) == [{"rank": 1}]


def test_fenced_array_is_rejected_for_object_replies():
    assert parse_model_json('```json\n[{"name": "D.Mills"}]\n```') is None
