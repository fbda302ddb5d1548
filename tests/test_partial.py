"""Partial record recovery tests."""

import json

import pytest

from schedule_agent.parsing.partial import recover_partial, recover_records, trim_to_structure

RECORDS = [
    {"sessionName": "Opening Keynote", "location": "Hall A", "speakers": ["Ada Lovelace"],
     "startTime": "2025-03-01T09:00:00Z", "endTime": "2025-03-01T10:00:00Z"},
    {"sessionName": "Async Python", "location": "Room 1", "speakers": [{"firstName": "Guido", "lastName": "R"}],
     "startTime": "2025-03-01T10:30:00Z", "endTime": "2025-03-01T11:15:00Z", "format": "Talk"},
    {"sessionName": "Data Pipelines", "location": "Room 2", "focus": "Data",
     "sessionAbstract": "Moving {bytes} around, [carefully]."},
    {"sessionName": "Closing", "location": "Hall A", "startTime": "2025-03-01T17:00:00Z"},
]


def test_example_truncated_second_record():
    proposal = recover_partial('[{"sessionName":"A","location":"Room1"},{"sessionName":"B"')
    assert [s.session_name for s in proposal.schedule] == ["A"]
    assert proposal.partial is True
    assert proposal.success is True
    assert proposal.total_sessions == 1


@pytest.mark.parametrize("record_index", range(len(RECORDS)))
def test_truncation_inside_a_record_keeps_preceding_records(record_index):
    text = json.dumps(RECORDS)
    starts = []
    position = 0
    for _ in RECORDS:
        position = text.index('{"sessionName"', position)
        starts.append(position)
        position += 1
    record_start = starts[record_index]
    # Index of the record's closing brace
    if record_index + 1 < len(starts):
        closing = starts[record_index + 1] - 3
    else:
        closing = len(text) - 2
    assert text[closing] == "}"
    # Cut at several offsets strictly inside the chosen record
    for cut in list(range(record_start + 1, closing, 7)) + [closing]:
        proposal = recover_partial(text[:cut])
        names = [s.session_name for s in proposal.schedule]
        assert names == [r["sessionName"] for r in RECORDS[:record_index]], cut
        assert proposal.partial is True


def test_records_missing_location_are_discarded():
    text = '[{"sessionName":"A","location":"X"},{"sessionName":"NoRoom"},{"location":"Y"},{"sessionName":"C","location":""}'
    proposal = recover_partial(text)
    assert [s.session_name for s in proposal.schedule] == ["A"]


def test_dangling_comma_is_repaired():
    text = '[{"sessionName":"A","location":"X",},{"sessionName":"B","location":"Y","speakers":["S",],}'
    proposal = recover_partial(text)
    assert [s.session_name for s in proposal.schedule] == ["A", "B"]
    assert proposal.schedule[1].speakers == ["S"]


def test_descends_into_unclosed_wrapper_object():
    text = '{"schedule": [{"sessionName":"A","location":"X"},{"sessionName":"B","location":"Y"},{"sessionName":"C"'
    proposal = recover_partial(text)
    assert [s.session_name for s in proposal.schedule] == ["A", "B"]
    assert proposal.locations == ["X", "Y"]


def test_prose_around_payload_is_ignored():
    text = 'Here is the schedule you asked for:\n[{"sessionName":"A","location":"X"},{"sessionName":"B",'
    assert [r["sessionName"] for r in recover_records(text)] == ["A"]


def test_unbalanced_prefix_does_not_hide_records():
    text = '{{ "note": "x", {"sessionName":"A","location":"X"} oops'
    records = recover_records(text)
    assert [r["sessionName"] for r in records] == ["A"]


def test_loose_scan_fallback_inside_invalid_object():
    # The outer object is balanced but not JSON, so the object scan keeps nothing
    text = '{"meta": oops, "item": {"sessionName":"A","location":"X"}}'
    records = recover_records(text)
    assert [r["sessionName"] for r in records] == ["A"]


def test_no_recoverable_data_is_well_formed_failure():
    proposal = recover_partial("The agent could not build a schedule today." * 40, preview_length=50)
    assert proposal.success is False
    assert proposal.schedule == []
    assert proposal.total_sessions == 0
    assert proposal.partial is True
    assert proposal.error
    assert proposal.raw_response.endswith("...")
    assert len(proposal.raw_response) == 53


def test_recover_partial_never_raises_on_garbage():
    for text in ["", "{", "]]]", '"', "{\"sessionName\": ", None]:
        proposal = recover_partial(text)
        assert proposal.success is False


def test_trim_to_structure():
    assert trim_to_structure('Sure! [1, 2] Thanks.') == "[1, 2]"
    assert trim_to_structure("no structure here") == ""
    assert trim_to_structure('say "hi"') == '"hi"'
