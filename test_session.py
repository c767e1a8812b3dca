"""
Tests for the upload / master / compare workflow
"""

import io
from unittest.mock import patch

import pytest

from lexicompare import extractors
from lexicompare.comparison import ComparisonPreconditionError, Match
from lexicompare.session import ComparisonSession, ContentState, FileReadError, guess_mime_type


class FakeUpload:
    """Mimics the upload objects handed over by the UI."""

    def __init__(self, name, data, type="text/plain"):
        self.name = name
        self.type = type
        self._data = data

    def getvalue(self):
        return self._data


class BrokenUpload(FakeUpload):
    def getvalue(self):
        raise OSError("disk went away")


MASTER_TEXT = "Alpha, beta; gamma.\nDelta alpha!"
OTHER_TEXT = "first line\nsecond line\nhas alpha twice: alpha\n"


def _session(**kwargs):
    session = ComparisonSession(**kwargs)
    session.add_files([
        FakeUpload("master.txt", MASTER_TEXT.encode("utf-8")),
        FakeUpload("other.txt", OTHER_TEXT.encode("utf-8")),
    ])
    return session


def test_end_to_end_master_terms_and_comparison():
    session = _session()
    master, other = session.files

    terms = session.set_master(master.id)
    assert terms == ["Alpha", "Delta", "alpha!", "beta", "gamma"]
    assert session.selected_terms == terms

    session.deselect_all()
    session.manual_terms = "alpha"
    result = session.run_comparison()

    assert result.terms == ("alpha",)
    cell = result.cell("alpha", other.id)
    assert cell.found is True
    assert cell.matches == (Match(line_number=3, context="has alpha twice: alpha"),)
    assert result.cell("alpha", master.id).matches == (
        Match(1, "Alpha, beta; gamma."),
        Match(2, "Delta alpha!"),
    )
    assert session.result is result


def test_exclude_master_from_comparison():
    session = _session(include_master=False)
    master, other = session.files
    session.set_master(master.id)
    result = session.run_comparison()
    assert [f.id for f in result.files] == [other.id]


def test_file_ids_unique_for_same_name():
    session = ComparisonSession()
    with patch("lexicompare.session.time.time", return_value=1700000000.0):
        a = session.add_file("same.txt", b"one")
        b = session.add_file("same.txt", b"two")
    assert a.id == "same.txt-1700000000000"
    assert b.id != a.id


def test_unreadable_upload_reported_and_skipped():
    session = ComparisonSession()
    failures = session.add_files([
        BrokenUpload("bad.txt", b""),
        FakeUpload("good.txt", b"fine content"),
    ])
    assert failures == [FileReadError(name="bad.txt", reason="disk went away")]
    assert [f.name for f in session.files] == ["good.txt"]


def test_upload_with_read_interface():
    class StreamUpload:
        name = "stream.txt"
        type = "text/plain"

        def __init__(self):
            self._buf = io.BytesIO(b"streamed words")

        def read(self):
            return self._buf.read()

        def seek(self, pos):
            self._buf.seek(pos)

    session = ComparisonSession()
    session.add_files([StreamUpload()])
    assert session.files[0].load_content() == "streamed words"


def test_content_loaded_once():
    session = _session()
    other = session.files[1]
    assert other.state is ContentState.UNLOADED
    assert other.content is None
    with patch("lexicompare.session.extract_content", wraps=extractors.extract_content) as spy:
        assert other.load_content() == OTHER_TEXT
        assert other.load_content() == OTHER_TEXT
    assert spy.call_count == 1
    assert other.state is ContentState.LOADED


def test_failed_extraction_keeps_partial_content():
    session = ComparisonSession()
    f = session.add_file("bad.txt", b"ok part\xff rest", "text/plain")
    assert f.load_content() == "ok part"
    assert f.state is ContentState.FAILED
    assert f.error


def test_precondition_no_files():
    session = ComparisonSession()
    session.manual_terms = "alpha"
    with pytest.raises(ComparisonPreconditionError):
        session.run_comparison()
    assert session.result is None


def test_precondition_no_master():
    session = _session()
    session.manual_terms = "alpha"
    with pytest.raises(ComparisonPreconditionError):
        session.run_comparison()
    assert session.result is None


def test_precondition_no_terms():
    session = _session()
    session.set_master(session.files[0].id)
    session.deselect_all()
    session.manual_terms = " , ,"
    with pytest.raises(ComparisonPreconditionError):
        session.run_comparison()
    assert session.result is None


def test_removing_master_resets_terms_and_result():
    session = _session()
    master = session.files[0]
    session.set_master(master.id)
    session.run_comparison()
    session.remove_file(master.id)
    assert session.master_file_id is None
    assert session.extracted_terms == []
    assert session.selected_terms == []
    assert session.result is None


def test_removing_other_file_discards_result():
    session = _session()
    session.set_master(session.files[0].id)
    session.run_comparison()
    session.remove_file(session.files[1].id)
    assert session.result is None
    assert session.master_file_id == session.files[0].id


def test_changing_master_discards_result():
    session = _session()
    session.set_master(session.files[0].id)
    session.run_comparison()
    session.set_master(session.files[1].id)
    assert session.result is None
    assert "alpha" in session.extracted_terms


def test_select_terms_limited_to_extracted():
    session = _session()
    session.set_master(session.files[0].id)
    session.select_terms(["beta", "unknown", "beta"])
    assert session.selected_terms == ["beta"]
    session.manual_terms = "beta, extra"
    assert session.terms == ["beta", "extra"]


def test_guess_mime_type():
    assert guess_mime_type("notes.txt", "") == "text/plain"
    assert guess_mime_type("data.json", None) == "application/json"
    assert guess_mime_type("whatever.bin", "application/pdf") == "application/pdf"
