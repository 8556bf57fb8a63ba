import logging
from typing import Callable, Sequence, TypeVar

from aigrading.core import messages
from aigrading.core.common import has_text, strip_tags
from aigrading.schemas.grading import BatchTally, GradingResult
from aigrading.schemas.moodle import Assignment, QuestionAttempt, QuizQuestion, Submission
from aigrading.services.grading_client import GradingClient
from aigrading.services.grading_store import GradingStore
from aigrading.services.submission_resolver import SubmissionResolver

logger = logging.getLogger("auto_grader")

T = TypeVar("T")


class AutoGrader:
    """
    Grades every ungraded item of a quiz question, a whole quiz or an assignment, and writes
    accepted grades back to the gradebook. Items are processed one at a time, in order;
    each ends up either graded or failed, and no single item can stop the run.
    """

    def __init__(self, store: GradingStore, client: GradingClient, resolver: SubmissionResolver):
        self.store = store
        self.client = client
        self.resolver = resolver

    # --- Batch shapes ---

    def grade_question(self, quiz_id: int, slot: int, question_id: int) -> BatchTally:
        question = self.store.get_question(quiz_id, question_id)
        attempts = self.store.find_attempts_needing_grading(quiz_id, slot, question_id)
        logger.info(f"▶️ [Quiz {quiz_id}] Question {question_id} (slot {slot}): {len(attempts)} attempts to grade")

        return self._run(
            [(question, attempt) for attempt in attempts],
            lambda item: self._grade_attempt(quiz_id, *item),
            empty_message=messages.NO_UNGRADED_ATTEMPTS,
            done_message=messages.QUESTION_DONE,
        )

    def grade_all_questions(self, quiz_id: int) -> BatchTally:
        candidates = []
        for question in self.store.list_essay_questions(quiz_id):
            attempts = self.store.find_attempts_needing_grading(quiz_id, question.slot, question.id)
            candidates.extend((question, attempt) for attempt in attempts)
        logger.info(f"▶️ [Quiz {quiz_id}] {len(candidates)} essay attempts to grade across all questions")

        return self._run(
            candidates,
            lambda item: self._grade_attempt(quiz_id, *item),
            empty_message=messages.NO_UNGRADED_QUIZ_ATTEMPTS,
            done_message=messages.QUIZ_DONE,
        )

    def grade_assignment(self, assignment_id: int) -> BatchTally:
        assignment = self.store.get_assignment(assignment_id)
        submissions = self.store.find_ungraded_submissions(assignment_id)
        logger.info(f"▶️ [Assignment {assignment_id}] {len(submissions)} submissions to grade")

        return self._run(
            submissions,
            lambda submission: self._grade_submission(assignment, submission),
            empty_message=messages.NO_UNGRADED_SUBMISSIONS,
            done_message=messages.ASSIGNMENT_DONE,
        )

    def suggest_for_submission(
        self, assignment_id: int, user_id: int, description: str, max_grade: float
    ) -> GradingResult:
        """Grade suggestion for one user's latest submission. Nothing is saved."""
        submission = self.store.get_latest_submission(assignment_id, user_id)
        if submission is None:
            return GradingResult.failure(messages.NO_SUBMISSION)

        text = self.resolver.resolve_text(submission)
        if not has_text(text):
            return GradingResult.failure(messages.NO_TEXT_CONTENT)

        return self.client.suggest_grade(description, text, max_grade)

    # --- Inner loop ---

    def _run(
        self,
        candidates: Sequence[T],
        grade_item: Callable[[T], bool],
        empty_message: str,
        done_message: str,
    ) -> BatchTally:
        if not candidates:
            return BatchTally(message=empty_message)

        tally = BatchTally()
        for item in candidates:
            try:
                graded = grade_item(item)
            except Exception as e:
                logger.error(f"❌ [System Error] while grading item: {e}", exc_info=True)
                graded = False

            if graded:
                tally.record_graded()
            else:
                tally.record_failed()

        tally.message = done_message.format(graded=tally.graded, failed=tally.failed)
        logger.info(f"✅ [Done] {tally.message}")
        return tally

    def _grade_attempt(self, quiz_id: int, question: QuizQuestion, attempt: QuestionAttempt) -> bool:
        answer = self.resolver.resolve_text(attempt)
        if not has_text(answer):
            logger.warning(f"⚠️ Attempt {attempt.attempt_id} has no answer text")
            return False

        result = self.client.suggest_grade(
            strip_tags(question.questiontext),
            answer,
            question.defaultmark,
            question.rubric or None,
            strip_tags(question.graderinfo) or None,
        )
        if not result.success:
            logger.warning(f"⚠️ Attempt {attempt.attempt_id}: {result.error}")
            return False

        self.store.save_attempt_grade(quiz_id, attempt, result.grade, result.feedback)
        return True

    def _grade_submission(self, assignment: Assignment, submission: Submission) -> bool:
        text = self.resolver.resolve_text(submission)
        if not has_text(text):
            logger.warning(f"⚠️ Submission {submission.id} has no gradable text")
            return False

        result = self.client.suggest_grade(strip_tags(assignment.intro), text, assignment.max_grade)
        if not result.success:
            logger.warning(f"⚠️ Submission {submission.id}: {result.error}")
            return False

        self.store.save_submission_grade(assignment.id, submission, result.grade, result.feedback)
        return True
