"""Local Sequencer — monotonic markers and per-topic message log."""

from eduair.infrastructure.local_sequencer import LocalSequencer


def _as_tuple(marker: str) -> tuple[int, int]:
    seconds, nanos = marker.split(".")
    return int(seconds), int(nanos)


async def test_markers_strictly_increase():
    sequencer = LocalSequencer()
    markers = [await sequencer.publish("0.0.1", {"n": i}) for i in range(50)]
    assert all(len(m.split(".")[1]) == 9 for m in markers)
    as_tuples = [_as_tuple(m) for m in markers]
    assert as_tuples == sorted(set(as_tuples))


async def test_messages_kept_per_topic_in_order():
    sequencer = LocalSequencer()
    m1 = await sequencer.publish("0.0.1", {"n": 1})
    await sequencer.publish("0.0.2", {"n": 2})
    m3 = await sequencer.publish("0.0.1", {"n": 3})
    assert sequencer.messages["0.0.1"] == [(m1, {"n": 1}), (m3, {"n": 3})]


async def test_missing_topic_falls_back_to_record_type():
    sequencer = LocalSequencer()
    await sequencer.publish(None, {"type": "telemetry"})
    assert len(sequencer.messages["telemetry"]) == 1
    await sequencer.aclose()
