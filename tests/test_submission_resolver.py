import pytest

from aigrading.schemas.moodle import StoredFile, Submission
from aigrading.services.file_extractor import FileExtractor
from aigrading.services.submission_resolver import SubmissionResolver


@pytest.fixture
def resolver(make_settings):
    return SubmissionResolver(FileExtractor(make_settings()))


def txt(file_id, text, sortorder=0):
    return StoredFile(id=file_id, filename=f"file{file_id}.txt", mimetype="text/plain",
                      sortorder=sortorder, content=text.encode("utf-8"))


def test_online_text_wins_and_is_stripped(resolver):
    submission = Submission(id=1, user_id=1, online_text="<p>My <b>answer</b></p><p>Line two</p>",
                            files=[txt(1, "file text")])

    assert resolver.resolve_text(submission) == "My answer\nLine two"


def test_blank_online_text_falls_through_to_files(resolver):
    submission = Submission(id=1, user_id=1, online_text="<p>&nbsp;</p>", files=[txt(1, "file text")])

    assert resolver.resolve_text(submission) == "file text"


def test_files_are_tried_in_sort_order(resolver):
    submission = Submission(id=1, user_id=1, files=[
        txt(5, "second by order", sortorder=2),
        txt(9, "first by order", sortorder=1),
        txt(3, "first by id", sortorder=2),
    ])

    assert resolver.resolve_text(submission) == "first by order"


def test_unsupported_and_empty_files_are_skipped(resolver):
    submission = Submission(id=1, user_id=1, files=[
        StoredFile(id=1, filename="diagram.png", mimetype="image/png", content=b"\x89PNG"),
        txt(2, "   "),
        StoredFile(id=3, filename="broken.docx",
                   mimetype="application/vnd.openxmlformats-officedocument.wordprocessingml.document",
                   content=b"not a docx"),
        txt(4, "usable text"),
    ])

    assert resolver.resolve_text(submission) == "usable text"


def test_nothing_usable_gives_empty_string(resolver):
    submission = Submission(id=1, user_id=1, files=[
        StoredFile(id=1, filename="diagram.png", mimetype="image/png", content=b"\x89PNG"),
    ])

    assert resolver.resolve_text(submission) == ""
