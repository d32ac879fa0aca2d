import json
import logging

from scorestream.models import ScoreMessage, ScoreResponse
from scorestream.models import metrics
from scorestream.network.correlator import MessageCorrelator


def test_correlated_frames_get_monotonic_ids():
    correlator = MessageCorrelator(prefix="p", correlated_games=["aim-gridshot"])

    first = correlator.tag(metrics.aim_score("hit", precision=0.5))
    second = correlator.tag(metrics.aim_score("miss"))

    assert first.message_id == "p1"
    assert second.message_id == "p2"
    assert correlator.counter == 3


def test_uncorrelated_frames_carry_no_id():
    correlator = MessageCorrelator()

    tagged = correlator.tag(metrics.default_score("unity-demo", 100.0))
    frame = json.loads(correlator.encode(metrics.button_smash_score(3.0)))

    assert tagged.message_id is None
    assert "messageId" not in frame
    assert correlator.counter == 1


def test_tag_does_not_mutate_original():
    correlator = MessageCorrelator()
    message = metrics.aim_score("hit")

    correlator.tag(message)

    assert message.message_id is None


def test_dispatch_broadcasts_to_every_listener():
    first, second, raw = [], [], []
    correlator = MessageCorrelator(listeners=[first.append], raw_listeners=[raw.append])
    correlator.add_listener(second.append)

    response = correlator.dispatch('{"messageId":"p7","value":42.5}')

    assert response == ScoreResponse(messageId="p7", value=42.5)
    assert first == [response]
    assert second == [response]
    assert raw == ['{"messageId":"p7","value":42.5}']


def test_malformed_frame_is_logged_and_skipped(caplog):
    typed, raw = [], []
    correlator = MessageCorrelator(listeners=[typed.append], raw_listeners=[raw.append])
    caplog.set_level(logging.WARNING)

    assert correlator.dispatch("not json") is None
    assert correlator.dispatch('{"messageId":"p1","value":"high"}') is None
    assert correlator.dispatch('{"foo":1}') is None

    assert typed == []
    assert raw == ["not json", '{"messageId":"p1","value":"high"}', '{"foo":1}']
    assert any("malformed" in record.getMessage() for record in caplog.records)


def test_failing_listener_does_not_block_others():
    seen = []

    def broken(_response):
        raise RuntimeError("listener bug")

    correlator = MessageCorrelator(listeners=[broken, seen.append])
    correlator.dispatch('{"messageId":"p1","value":1}')

    assert len(seen) == 1


def test_score_message_round_trip_preserves_fields():
    message = ScoreMessage(
        game="holdthewall",
        time_elapsed=12.345678901234,
        message_id="p3",
        data=[{"score": 0.1 + 0.2, "precision": 1e-9, "nth": 4}],
    )

    decoded = ScoreMessage.from_frame(message.to_frame())

    assert decoded.game == "holdthewall"
    assert decoded.time_elapsed == 12.345678901234
    assert decoded.data[0]["score"] == 0.1 + 0.2
    assert decoded.data[0]["precision"] == 1e-9
    assert decoded.data[0]["nth"] == 4
    assert decoded == message


def test_frame_uses_wire_names_and_omits_unset_fields():
    frame = json.loads(metrics.stay_on_target_score(3.5, 80.0).to_frame())

    assert frame == {"game": "stayontarget", "data": [{"score": 80.0}], "timeElapsed": 3.5}


def test_variant_builders_shape_metrics():
    assert metrics.platformer_score(victim=2, streak=5).data == [{"victim": 2, "streak": 5}]
    multitasking = metrics.multitasking_score(10.0, obstacle_block=True, bars_active=2, target_clicks=("a", "b"))
    assert multitasking.data == [
        {"score": 10.0, "obstacleBlock": True, "barsActive": 2, "targetClicks": ["a", "b"]}
    ]
    assert metrics.observe_score(1.0, "q?", "a!").data == [{"score": 1.0, "question": "q?", "answer": "a!"}]
    assert metrics.hold_the_wall_score(4.0, 2.0).time_elapsed == 4.0
