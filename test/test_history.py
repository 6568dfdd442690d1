"""Tests for /history classification and output extraction."""

from cardart.core.client.history import classify_history, extract_error_message, find_output_image
from cardart.core.client.models import ErrorKind, JobStatus

from conftest import history_success


def test_unknown_job_is_pending():
    result = classify_history({"other-id": {"status": {"status_str": "success"}}}, "abc")

    assert result.status == JobStatus.PENDING
    assert result.error is None
    assert result.job_id == "abc"


def test_success_extracts_first_image_filename():
    result = classify_history(history_success("abc", "card_00001_.png", subfolder="cards", type="output"), "abc")

    assert result.status == JobStatus.COMPLETED
    assert result.artifact_ref == "card_00001_.png"
    assert result.artifact_meta == {"subfolder": "cards", "type": "output"}
    assert result.error is None


def test_success_without_image_output_has_no_artifact_ref():
    result = classify_history(history_success("abc", filename=None), "abc")

    assert result.status == JobStatus.COMPLETED
    assert result.artifact_ref is None


def test_first_image_bearing_node_wins():
    history = {
        "abc": {
            "status": {"status_str": "success"},
            "outputs": {
                "4": {"images": []},
                "7": {"images": [{"subfolder": ""}]},
                "9": {"images": [{"filename": "first.png"}, {"filename": "second.png"}]},
                "12": {"images": [{"filename": "later.png"}]},
            },
        }
    }

    assert classify_history(history, "abc").artifact_ref == "first.png"


def test_error_takes_second_element_of_first_message():
    history = {
        "abc": {
            "status": {
                "status_str": "error",
                "messages": [["execution_error", "CUDA out of memory"], ["execution_interrupted", "later"]],
            }
        }
    }

    result = classify_history(history, "abc")

    assert result.status == JobStatus.ERROR
    assert result.error_kind == ErrorKind.JOB_FAILED
    assert result.error == "CUDA out of memory"


def test_error_without_messages_has_empty_detail():
    result = classify_history({"abc": {"status": {"status_str": "error"}}}, "abc")

    assert result.status == JobStatus.ERROR
    assert result.error == ""


def test_error_message_from_structured_payload():
    status = {"messages": [["execution_error", {"exception_message": "bad node", "node_id": "5"}]]}

    assert extract_error_message(status) == "bad node"


def test_malformed_messages_are_tolerated():
    assert extract_error_message({"messages": "nope"}) == ""
    assert extract_error_message({"messages": [["only_one"]]}) == ""
    assert extract_error_message({"messages": [["event", 42]]}) == ""


def test_record_without_status_is_completed_legacy_shape():
    history = {"abc": {"outputs": {"9": {"images": [{"filename": "legacy.png"}]}}}}

    result = classify_history(history, "abc")

    assert result.status == JobStatus.COMPLETED
    assert result.artifact_ref == "legacy.png"


def test_null_status_is_pending_not_legacy_completed():
    history = {"abc": {"status": None, "outputs": {"9": {"images": [{"filename": "a.png"}]}}}}

    result = classify_history(history, "abc")

    assert result.status == JobStatus.PENDING
    assert result.artifact_ref is None


def test_unrecognized_status_string_is_pending():
    result = classify_history({"abc": {"status": {"status_str": "queued"}}}, "abc")

    assert result.status == JobStatus.PENDING


def test_find_output_image_ignores_non_mapping_outputs():
    assert find_output_image({"outputs": []}) is None
    assert find_output_image({}) is None
