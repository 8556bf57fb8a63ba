from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Literal, Optional, Union

Confidence = Literal["high", "medium", "low"]
CONFIDENCE_LEVELS = ("high", "medium", "low")


class GradingRequest(BaseModel):
    """Everything the remote grader needs for one answer. Built per item, never stored."""
    question_text: str = Field(..., description="Question or assignment description")
    answer_text: str = Field(..., description="Student answer (never empty)")
    max_grade: float = Field(..., gt=0, description="Upper bound of the grade scale")
    rubric: Optional[str] = Field(None, description="Grading criteria")
    grader_info: Optional[str] = Field(None, description="Model answer / grading notes")
    system_prompt: Optional[str] = Field(None, description="System instruction for the model")

    @field_validator("answer_text")
    @classmethod
    def answer_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("answer text is empty")
        return value

    @property
    def has_grading_context(self) -> bool:
        return bool(self.rubric) or bool(self.grader_info)


class GradingResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool
    grade: float = Field(0.0, description="Suggested grade, clamped to [0, max_grade]")
    feedback: str = Field("", description="Feedback for the student")
    explanation: str = Field("", description="Explanation for the teacher")
    confidence: Confidence = Field("medium", description="high | medium | low")
    error: str = Field("", description="Error message if success is false")

    @classmethod
    def failure(cls, error: str) -> "GradingResult":
        return cls(success=False, error=error)


class BatchTally(BaseModel):
    """Outcome counters of one batch run. Counters only ever go up."""
    graded: int = 0
    failed: int = 0
    message: str = ""

    @property
    def total(self) -> int:
        return self.graded + self.failed

    def record_graded(self):
        self.graded += 1

    def record_failed(self):
        self.failed += 1


class ConnectionTestResult(BaseModel):
    success: bool
    message: str


# --- API request / response bodies ---

class AnswerItem(BaseModel):
    id: Union[str, int] = Field(..., description="Answer identifier")
    text: str = Field(..., description="The student answer text")


class SuggestGradeRequest(BaseModel):
    cmid: int = Field(..., description="Course module ID")
    questiontext: str
    answertext: str
    maxgrade: float
    rubric: str = ""
    graderinfo: str = ""


class BulkGradeRequest(BaseModel):
    cmid: int = Field(..., description="Course module ID")
    questiontext: str
    answers: List[AnswerItem]
    maxgrade: float
    rubric: str = ""


class BulkGradeItem(BaseModel):
    id: str
    success: bool
    grade: float
    feedback: str
    explanation: str
    confidence: Confidence
    error: str


class BulkGradeResponse(BaseModel):
    success: bool = True
    results: List[BulkGradeItem]


class SuggestFileRequest(BaseModel):
    cmid: int = Field(..., description="Assignment ID")
    userid: int = Field(..., description="User ID")
    assignmentdesc: str = Field(..., description="Assignment description")
    maxgrade: float


class AutoGradeQuestionRequest(BaseModel):
    cmid: int = Field(..., description="Quiz ID")
    slot: int = Field(..., description="Question slot number")
    questionid: int = Field(..., description="Question ID")


class AutoGradeContainerRequest(BaseModel):
    cmid: int = Field(..., description="Quiz or assignment ID")


class AutoGradeResponse(BaseModel):
    success: bool = True
    graded: int
    failed: int
    message: str

    @classmethod
    def from_tally(cls, tally: BatchTally) -> "AutoGradeResponse":
        return cls(graded=tally.graded, failed=tally.failed, message=tally.message)
