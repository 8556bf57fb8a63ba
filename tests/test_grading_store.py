import json

import pytest

from aigrading.services.grading_store import JsonGradingStore


GRADEBOOK = {
    "quizzes": [{
        "id": 10,
        "name": "Biology quiz",
        "questions": [
            {"id": 100, "slot": 2, "questiontext": "Explain photosynthesis", "defaultmark": 10},
            {"id": 101, "slot": 1, "questiontext": "Pick one", "qtype": "multichoice"},
            {"id": 102, "slot": 3, "questiontext": "Explain respiration", "defaultmark": 5},
        ],
        "attempts": [
            {"attempt_id": 3, "user_id": 7, "slot": 2, "question_id": 100, "online_text": "c"},
            {"attempt_id": 1, "user_id": 5, "slot": 2, "question_id": 100, "online_text": "a"},
            {"attempt_id": 2, "user_id": 6, "slot": 2, "question_id": 100, "state": "inprogress"},
            {"attempt_id": 4, "user_id": 8, "slot": 2, "question_id": 100, "needs_grading": False},
            {"attempt_id": 5, "user_id": 9, "slot": 3, "question_id": 102, "online_text": "e"},
        ],
    }],
    "assignments": [{
        "id": 20,
        "name": "Essay",
        "intro": "<p>Write about rivers</p>",
        "grade": 0,
        "submissions": [
            {"id": 2, "user_id": 5, "online_text": "rivers"},
            {"id": 1, "user_id": 6, "grade": -1, "online_text": "more rivers"},
            {"id": 3, "user_id": 7, "status": "draft"},
            {"id": 4, "user_id": 8, "grade": 55},
            {"id": 5, "user_id": 9, "latest": False},
        ],
    }],
}


@pytest.fixture
def store(make_store):
    return make_store(GRADEBOOK)


def test_new_store_file_is_created(tmp_path):
    path = tmp_path / "nested" / "store.json"

    JsonGradingStore(str(path))

    assert json.loads(path.read_text()) == {"quizzes": [], "assignments": []}


def test_attempts_needing_grading_are_filtered_and_ordered(store):
    attempts = store.find_attempts_needing_grading(10, 2, 100)

    assert [a.attempt_id for a in attempts] == [1, 3]


def test_essay_questions_in_slot_order(store):
    assert [q.id for q in store.list_essay_questions(10)] == [100, 102]


def test_ungraded_submissions(store):
    assert [s.id for s in store.find_ungraded_submissions(20)] == [1, 2]


def test_assignment_without_grade_defaults_to_hundred(store):
    assert store.get_assignment(20).max_grade == 100


def test_latest_submission_lookup(store):
    assert store.get_latest_submission(20, 6).id == 1
    assert store.get_latest_submission(20, 9) is None
    assert store.get_latest_submission(20, 42) is None


def test_unknown_containers_raise_lookup_error(store):
    with pytest.raises(LookupError):
        store.get_assignment(99)
    with pytest.raises(LookupError):
        store.find_attempts_needing_grading(99, 1, 1)
    with pytest.raises(LookupError):
        store.get_question(10, 999)


def test_saved_attempt_grade_persists(store):
    attempt = store.find_attempts_needing_grading(10, 2, 100)[0]

    store.save_attempt_grade(10, attempt, 8.5, "Nice work")

    reloaded = JsonGradingStore(store.file_path)
    assert [a.attempt_id for a in reloaded.find_attempts_needing_grading(10, 2, 100)] == [3]
    with open(store.file_path, encoding="utf-8") as f:
        saved = json.load(f)["quizzes"][0]["attempts"][1]
    assert saved["mark"] == 8.5
    assert saved["comment"] == "Nice work"


def test_saved_submission_grade_persists(store):
    submission = store.find_ungraded_submissions(20)[0]

    store.save_submission_grade(20, submission, 72.0, "Solid")

    assert [s.id for s in store.find_ungraded_submissions(20)] == [2]


def test_relative_file_paths_survive_a_save(make_store, tmp_path):
    (tmp_path / "files").mkdir()
    (tmp_path / "files" / "essay.txt").write_text("hello")
    store = make_store({"assignments": [{
        "id": 1,
        "submissions": [{"id": 1, "user_id": 1, "files": [
            {"id": 1, "filename": "essay.txt", "filepath": "files/essay.txt"},
        ]}],
    }]})

    submission = store.find_ungraded_submissions(1)[0]
    assert submission.files[0].get_content() == b"hello"

    store.save_submission_grade(1, submission, 50, "ok")

    with open(store.file_path, encoding="utf-8") as f:
        saved = json.load(f)
    assert saved["assignments"][0]["submissions"][0]["files"][0]["filepath"] == "files/essay.txt"
