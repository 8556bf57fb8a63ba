from pydantic_settings import BaseSettings
from typing import Literal, Optional

DEFAULT_SYSTEM_PROMPT = """You are an essay grading assistant for teachers. Your task is to grade the student's answer based on the question and the rubric provided.

VERY IMPORTANT - RELEVANCE CHECK:
First, check whether the student's answer is RELEVANT to the question.
- If the answer is OFF-TOPIC or discusses something different from the question, give AT MOST 20% of the maximum grade.
- If the answer is only PARTIALLY relevant and loses focus, give at most 50%.
- Only give a high grade when the answer really addresses the requested topic.

Return the output in the following JSON format:
{
    "grade": <numeric grade>,
    "feedback": "<constructive feedback for the student>",
    "explanation": "<explanation for the teacher of why this grade was given>",
    "confidence": "<high | medium | low>"
}

Make sure that:
1. Relevance to the question is ALWAYS checked FIRST
2. The grade follows the given scale (0 up to the maximum grade)
3. Off-topic answers are explained as not matching the question
4. Feedback is constructive and specific
5. The explanation covers the strengths and weaknesses of the answer"""

DEFAULT_RUBRIC = """Grading criteria:
- 90-100: Complete answer, relevant examples, clear and well-structured explanation
- 70-89: Fairly complete answer with a few minor gaps
- 50-69: Incomplete answer that needs significant improvement
- <50: Answer does not meet the minimum criteria or is not relevant"""

DEFAULT_BASE_URLS = {
    "openai": "https://api.openai.com/v1",
    "proxy": "http://localhost:8000",
}


class Settings(BaseSettings):
    PROJECT_NAME: str = "AI Grading"
    API_V1_STR: str = "/api/v1"

    # --- Grading backend ---
    # "openai": chat-completion API, "proxy": grading proxy (/api/moodle/grade)
    GRADING_BACKEND: Literal["openai", "proxy"] = "openai"
    API_KEY: Optional[str] = None
    API_BASE_URL: Optional[str] = None
    MODEL_NAME: str = "gpt-4o-mini"
    SYSTEM_PROMPT: str = DEFAULT_SYSTEM_PROMPT
    DEFAULT_RUBRIC: str = DEFAULT_RUBRIC
    MAX_TOKENS: int = 1000
    TEMPERATURE: float = 0.3
    REQUEST_TIMEOUT: float = 120.0
    VERIFY_SSL: bool = True

    # --- File extraction ---
    MAX_TEXT_LENGTH: int = 50000
    TEMP_DIR: Optional[str] = None

    # --- Host gradebook (JSON file) ---
    STORE_PATH: str = "data/moodle_store.json"

    class Config:
        env_file = ".env"
        extra = "ignore"

    @property
    def base_url(self) -> str:
        """Configured base URL, or the default one for the selected backend."""
        return (self.API_BASE_URL or DEFAULT_BASE_URLS[self.GRADING_BACKEND]).rstrip("/")


settings = Settings()
