import json
import logging
import os
from abc import ABC, abstractmethod
from typing import List, Optional

from pydantic import BaseModel, Field

from aigrading.schemas.moodle import Assignment, QuestionAttempt, Quiz, QuizQuestion, Submission

logger = logging.getLogger("grading_store")


class GradingStore(ABC):
    """Boundary to the host gradebook: where candidates come from and grades go to."""

    @abstractmethod
    def get_question(self, quiz_id: int, question_id: int) -> QuizQuestion:
        ...

    @abstractmethod
    def list_essay_questions(self, quiz_id: int) -> List[QuizQuestion]:
        ...

    @abstractmethod
    def find_attempts_needing_grading(self, quiz_id: int, slot: int, question_id: int) -> List[QuestionAttempt]:
        ...

    @abstractmethod
    def save_attempt_grade(self, quiz_id: int, attempt: QuestionAttempt, mark: float, comment: str):
        ...

    @abstractmethod
    def get_assignment(self, assignment_id: int) -> Assignment:
        ...

    @abstractmethod
    def find_ungraded_submissions(self, assignment_id: int) -> List[Submission]:
        ...

    @abstractmethod
    def get_latest_submission(self, assignment_id: int, user_id: int) -> Optional[Submission]:
        ...

    @abstractmethod
    def save_submission_grade(self, assignment_id: int, submission: Submission, grade: float, feedback: str):
        ...


class StoreData(BaseModel):
    quizzes: List[Quiz] = Field(default_factory=list)
    assignments: List[Assignment] = Field(default_factory=list)


class JsonGradingStore(GradingStore):
    """
    Gradebook kept in a single JSON file. Attachment paths are relative to the file's directory.
    The file is re-read on every call and rewritten on every grade save; there is no locking.
    """

    def __init__(self, file_path: str):
        self.file_path = file_path
        self._init_file()

    def _init_file(self):
        directory = os.path.dirname(self.file_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        if not os.path.exists(self.file_path):
            self._save(StoreData())

    def _load(self) -> StoreData:
        with open(self.file_path, "r", encoding="utf-8") as f:
            data = StoreData.model_validate(json.load(f))
        self._resolve_paths(data)
        return data

    def _save(self, data: StoreData):
        data = data.model_copy(deep=True)
        self._relativize_paths(data)
        with open(self.file_path, "w", encoding="utf-8") as f:
            json.dump(data.model_dump(mode="json", exclude_none=True), f, ensure_ascii=False, indent=4)

    @property
    def base_dir(self) -> str:
        return os.path.dirname(os.path.abspath(self.file_path))

    @staticmethod
    def _all_files(data: StoreData):
        for quiz in data.quizzes:
            for attempt in quiz.attempts:
                yield from attempt.files
        for assignment in data.assignments:
            for submission in assignment.submissions:
                yield from submission.files

    def _resolve_paths(self, data: StoreData):
        for stored in self._all_files(data):
            if stored.filepath and not os.path.isabs(stored.filepath):
                stored.filepath = os.path.join(self.base_dir, stored.filepath)

    def _relativize_paths(self, data: StoreData):
        for stored in self._all_files(data):
            if stored.filepath and os.path.isabs(stored.filepath) and stored.filepath.startswith(self.base_dir + os.sep):
                stored.filepath = os.path.relpath(stored.filepath, self.base_dir)

    # --- Quizzes ---

    @staticmethod
    def _find_quiz(data: StoreData, quiz_id: int) -> Quiz:
        for quiz in data.quizzes:
            if quiz.id == quiz_id:
                return quiz
        raise LookupError(f"Quiz {quiz_id} not found")

    def get_question(self, quiz_id: int, question_id: int) -> QuizQuestion:
        quiz = self._find_quiz(self._load(), quiz_id)
        for question in quiz.questions:
            if question.id == question_id:
                return question
        raise LookupError(f"Question {question_id} not found in quiz {quiz_id}")

    def list_essay_questions(self, quiz_id: int) -> List[QuizQuestion]:
        quiz = self._find_quiz(self._load(), quiz_id)
        return sorted((q for q in quiz.questions if q.qtype == "essay"), key=lambda q: q.slot)

    def find_attempts_needing_grading(self, quiz_id: int, slot: int, question_id: int) -> List[QuestionAttempt]:
        quiz = self._find_quiz(self._load(), quiz_id)
        attempts = [
            a for a in quiz.attempts
            if a.state == "finished" and a.slot == slot and a.question_id == question_id and a.needs_grading
        ]
        return sorted(attempts, key=lambda a: a.attempt_id)

    def save_attempt_grade(self, quiz_id: int, attempt: QuestionAttempt, mark: float, comment: str):
        data = self._load()
        quiz = self._find_quiz(data, quiz_id)
        for stored in quiz.attempts:
            if stored.attempt_id == attempt.attempt_id and stored.slot == attempt.slot:
                stored.mark = mark
                stored.comment = comment
                stored.needs_grading = False
                self._save(data)
                logger.info(f"Saved mark {mark} for attempt {attempt.attempt_id} (slot {attempt.slot})")
                return
        raise LookupError(f"Attempt {attempt.attempt_id} (slot {attempt.slot}) not found in quiz {quiz_id}")

    # --- Assignments ---

    @staticmethod
    def _find_assignment(data: StoreData, assignment_id: int) -> Assignment:
        for assignment in data.assignments:
            if assignment.id == assignment_id:
                return assignment
        raise LookupError(f"Assignment {assignment_id} not found")

    def get_assignment(self, assignment_id: int) -> Assignment:
        return self._find_assignment(self._load(), assignment_id)

    def find_ungraded_submissions(self, assignment_id: int) -> List[Submission]:
        assignment = self._find_assignment(self._load(), assignment_id)
        submissions = [
            s for s in assignment.submissions
            if s.status == "submitted" and s.latest and s.is_ungraded
        ]
        return sorted(submissions, key=lambda s: s.id)

    def get_latest_submission(self, assignment_id: int, user_id: int) -> Optional[Submission]:
        assignment = self._find_assignment(self._load(), assignment_id)
        for submission in assignment.submissions:
            if submission.user_id == user_id and submission.latest:
                return submission
        return None

    def save_submission_grade(self, assignment_id: int, submission: Submission, grade: float, feedback: str):
        data = self._load()
        assignment = self._find_assignment(data, assignment_id)
        for stored in assignment.submissions:
            if stored.id == submission.id:
                stored.grade = grade
                stored.feedback = feedback
                self._save(data)
                logger.info(f"Saved grade {grade} for submission {submission.id} (user {submission.user_id})")
                return
        raise LookupError(f"Submission {submission.id} not found in assignment {assignment_id}")
