from fastapi import APIRouter, Depends, HTTPException
import logging

from aigrading.api.deps import get_auto_grader, get_grading_client
from aigrading.schemas.grading import (
    BulkGradeItem,
    BulkGradeRequest,
    BulkGradeResponse,
    GradingResult,
    SuggestFileRequest,
    SuggestGradeRequest,
)
from aigrading.services.auto_grader import AutoGrader
from aigrading.services.grading_client import GradingClient

logger = logging.getLogger("grading_endpoint")

router = APIRouter()


@router.post("/suggest", response_model=GradingResult)
def suggest_grade(payload: SuggestGradeRequest, client: GradingClient = Depends(get_grading_client)):
    """
    AI grade suggestion for a single essay answer.
    """
    logger.info(f"🚀 [Suggest] cmid={payload.cmid}")
    return client.suggest_grade(
        payload.questiontext,
        payload.answertext,
        payload.maxgrade,
        payload.rubric or None,
        payload.graderinfo or None,
    )


@router.post("/bulk", response_model=BulkGradeResponse)
def bulk_grade(payload: BulkGradeRequest, client: GradingClient = Depends(get_grading_client)):
    """
    AI grade suggestions for several answers to the same question.
    """
    logger.info(f"🚀 [Bulk] cmid={payload.cmid}, {len(payload.answers)} answers")
    results = client.bulk_grade(
        payload.questiontext,
        payload.answers,
        payload.maxgrade,
        payload.rubric or None,
    )

    return BulkGradeResponse(
        results=[
            BulkGradeItem(id=str(answer_id), **result.model_dump())
            for answer_id, result in results.items()
        ]
    )


@router.post("/suggest-file", response_model=GradingResult)
def suggest_grade_file(payload: SuggestFileRequest, grader: AutoGrader = Depends(get_auto_grader)):
    """
    AI grade suggestion for a user's assignment submission (online text or uploaded file).
    """
    logger.info(f"🚀 [Suggest file] assignment={payload.cmid}, user={payload.userid}")
    try:
        return grader.suggest_for_submission(
            payload.cmid, payload.userid, payload.assignmentdesc, payload.maxgrade
        )
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
