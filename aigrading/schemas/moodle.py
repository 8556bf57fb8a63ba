import mimetypes
import os
import shutil
from pydantic import BaseModel, Field
from typing import List, Optional


class StoredFile(BaseModel):
    """A file attached to a submission or essay answer.

    Content is either held inline (`content`) or read from `filepath`.
    """
    id: int
    filename: str
    mimetype: str = ""
    sortorder: int = 0
    filepath: Optional[str] = None
    content: Optional[bytes] = None

    def get_mimetype(self) -> str:
        if self.mimetype:
            return self.mimetype
        guessed, _ = mimetypes.guess_type(self.filename)
        return guessed or "application/octet-stream"

    def get_content(self) -> bytes:
        if self.content is not None:
            return self.content
        if not self.filepath:
            raise FileNotFoundError(f"No content stored for file {self.filename}")
        with open(self.filepath, "rb") as f:
            return f.read()

    def copy_content_to(self, path: str):
        if self.content is None and self.filepath:
            shutil.copyfile(self.filepath, path)
            return
        with open(path, "wb") as f:
            f.write(self.get_content())

    @property
    def extension(self) -> str:
        return os.path.splitext(self.filename)[1].lstrip(".").lower()


class QuizQuestion(BaseModel):
    id: int
    slot: int
    questiontext: str
    defaultmark: float = 1.0
    qtype: str = "essay"
    graderinfo: str = ""
    rubric: str = ""


class QuestionAttempt(BaseModel):
    """One student's attempt at one quiz slot."""
    attempt_id: int
    user_id: int
    slot: int
    question_id: int
    state: str = "finished"
    needs_grading: bool = True
    online_text: str = ""
    files: List[StoredFile] = Field(default_factory=list)
    mark: Optional[float] = None
    comment: str = ""


class Quiz(BaseModel):
    id: int
    name: str = ""
    questions: List[QuizQuestion] = Field(default_factory=list)
    attempts: List[QuestionAttempt] = Field(default_factory=list)


class Submission(BaseModel):
    id: int
    user_id: int
    status: str = "submitted"
    latest: bool = True
    attemptnumber: int = 0
    online_text: str = ""
    files: List[StoredFile] = Field(default_factory=list)
    grade: Optional[float] = None
    feedback: str = ""

    @property
    def is_ungraded(self) -> bool:
        return self.grade is None or self.grade < 0


class Assignment(BaseModel):
    id: int
    name: str = ""
    intro: str = ""
    grade: float = 100.0
    submissions: List[Submission] = Field(default_factory=list)

    @property
    def max_grade(self) -> float:
        return self.grade if self.grade > 0 else 100.0
