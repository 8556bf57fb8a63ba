from fastapi import APIRouter, Depends, HTTPException
import logging

from aigrading.api.deps import get_auto_grader
from aigrading.schemas.grading import (
    AutoGradeContainerRequest,
    AutoGradeQuestionRequest,
    AutoGradeResponse,
)
from aigrading.services.auto_grader import AutoGrader

logger = logging.getLogger("auto_grade_endpoint")

router = APIRouter()


@router.post("/question", response_model=AutoGradeResponse)
def auto_grade_question(payload: AutoGradeQuestionRequest, grader: AutoGrader = Depends(get_auto_grader)):
    """
    Grade and save every ungraded attempt of one quiz question.
    """
    logger.info(f"🚀 [Auto grade question] quiz={payload.cmid}, slot={payload.slot}, question={payload.questionid}")
    try:
        tally = grader.grade_question(payload.cmid, payload.slot, payload.questionid)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return AutoGradeResponse.from_tally(tally)


@router.post("/quiz", response_model=AutoGradeResponse)
def auto_grade_quiz(payload: AutoGradeContainerRequest, grader: AutoGrader = Depends(get_auto_grader)):
    """
    Grade and save every ungraded attempt of every essay question in a quiz.
    """
    logger.info(f"🚀 [Auto grade quiz] quiz={payload.cmid}")
    try:
        tally = grader.grade_all_questions(payload.cmid)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return AutoGradeResponse.from_tally(tally)


@router.post("/assignment", response_model=AutoGradeResponse)
def auto_grade_assignment(payload: AutoGradeContainerRequest, grader: AutoGrader = Depends(get_auto_grader)):
    """
    Grade and save every ungraded submission of an assignment.
    """
    logger.info(f"🚀 [Auto grade assignment] assignment={payload.cmid}")
    try:
        tally = grader.grade_assignment(payload.cmid)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return AutoGradeResponse.from_tally(tally)
