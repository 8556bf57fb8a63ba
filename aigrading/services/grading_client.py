import json
import logging
import math
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, Mapping, Optional, Union

import httpx
from pydantic import ValidationError

from aigrading.core import messages
from aigrading.core.common import clamp
from aigrading.core.config import Settings
from aigrading.schemas.grading import (
    CONFIDENCE_LEVELS,
    AnswerItem,
    ConnectionTestResult,
    GradingRequest,
    GradingResult,
)
from aigrading.services.prompt_service import prompt_service

logger = logging.getLogger("grading_client")


class GradingAPIError(Exception):
    """Transport failure or non-2xx answer from the grading backend."""


# --- Response helpers ---

def clean_json_string(json_str: str) -> str:
    """
    Strip markdown fences (```json ... ```) some models wrap around JSON output.
    """
    json_str = json_str.strip()
    if json_str.startswith("```"):
        match = re.search(r"```(?:json)?(.*?)```", json_str, re.DOTALL)
        if match:
            return match.group(1).strip()
    return json_str


def error_message_from(response: httpx.Response) -> str:
    """Human-readable error from a failed response: error.message, message, error, then the status."""
    try:
        data = response.json()
    except ValueError:
        data = None

    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if data.get("message"):
            return str(data["message"])
        if error:
            return error if isinstance(error, str) else json.dumps(error)

    return f"HTTP {response.status_code}"


def normalize_confidence(value: Any) -> str:
    if isinstance(value, str) and value.strip().lower() in CONFIDENCE_LEVELS:
        return value.strip().lower()
    return "medium"


def build_result(grade_data: Any, max_grade: float) -> GradingResult:
    """Validate the grade fields of a backend answer and clamp the grade into [0, max_grade]."""
    if not isinstance(grade_data, dict):
        return GradingResult.failure(messages.INVALID_RESPONSE)

    raw_grade = grade_data.get("grade")
    if raw_grade is None or isinstance(raw_grade, bool):
        return GradingResult.failure(messages.INVALID_RESPONSE)
    try:
        grade = float(raw_grade)
    except (TypeError, ValueError):
        return GradingResult.failure(messages.INVALID_RESPONSE)
    if not math.isfinite(grade):
        return GradingResult.failure(messages.INVALID_RESPONSE)

    feedback = grade_data.get("feedback")
    explanation = grade_data.get("explanation")

    return GradingResult(
        success=True,
        grade=clamp(grade, 0.0, max_grade),
        feedback="" if feedback is None else str(feedback),
        explanation="" if explanation is None else str(explanation),
        confidence=normalize_confidence(grade_data.get("confidence")),
    )


def _request_error_text(error: httpx.RequestError) -> str:
    return str(error) or type(error).__name__


class GradingClient(ABC):
    """
    Talks to a remote grading backend. Subclasses only define the wire format:
    endpoint, headers, payload and how the success body is unpacked.
    """
    endpoint_path: str = ""

    def __init__(self, settings: Settings, transport: Optional[httpx.BaseTransport] = None):
        self.api_key = settings.API_KEY or ""
        self.base_url = settings.base_url
        self.system_prompt = settings.SYSTEM_PROMPT
        self.default_rubric = settings.DEFAULT_RUBRIC
        self.timeout = settings.REQUEST_TIMEOUT
        self.verify_ssl = settings.VERIFY_SSL
        self._transport = transport

    @property
    def url(self) -> str:
        return f"{self.base_url}{self.endpoint_path}"

    def is_configured(self) -> bool:
        return bool(self.api_key)

    # --- Wire format ---

    @abstractmethod
    def headers(self) -> Dict[str, str]:
        ...

    @abstractmethod
    def build_payload(self, request: GradingRequest) -> Dict[str, Any]:
        ...

    @abstractmethod
    def probe_payload(self) -> Dict[str, Any]:
        ...

    @abstractmethod
    def parse_response(self, response: httpx.Response, max_grade: float) -> GradingResult:
        ...

    # --- Transport ---

    def _send(self, payload: Dict[str, Any]) -> httpx.Response:
        with httpx.Client(timeout=self.timeout, verify=self.verify_ssl, transport=self._transport) as client:
            return client.post(self.url, json=payload, headers=self.headers())

    def _post(self, payload: Dict[str, Any]) -> httpx.Response:
        try:
            response = self._send(payload)
        except httpx.RequestError as e:
            raise GradingAPIError(f"Connection error: {_request_error_text(e)}") from e

        if not response.is_success:
            raise GradingAPIError(error_message_from(response))
        return response

    # --- Public API ---

    def suggest_grade(
        self,
        question_text: str,
        answer_text: str,
        max_grade: float,
        rubric: Optional[str] = None,
        grader_info: Optional[str] = None,
    ) -> GradingResult:
        if not self.is_configured():
            return GradingResult.failure(messages.NO_API_KEY)

        try:
            request = GradingRequest(
                question_text=question_text,
                answer_text=answer_text,
                max_grade=max_grade,
                rubric=rubric or self.default_rubric or None,
                grader_info=grader_info or None,
                system_prompt=self.system_prompt,
            )
        except ValidationError as e:
            return GradingResult.failure(self._describe_invalid_request(e))

        logger.info(f"🤖 Requesting grade suggestion from {self.url}")
        try:
            response = self._post(self.build_payload(request))
            result = self.parse_response(response, request.max_grade)
        except GradingAPIError as e:
            logger.warning(f"⚠️ Grading API error: {e}")
            return GradingResult.failure(messages.API_ERROR.format(e))
        except Exception as e:
            logger.error(f"System error while grading: {e}", exc_info=True)
            return GradingResult.failure(messages.API_ERROR.format(e))

        if result.success:
            logger.info(f"✅ Suggested grade {result.grade}/{request.max_grade} ({result.confidence})")
        else:
            logger.warning(f"⚠️ Unusable grading response: {result.error}")
        return result

    def bulk_grade(
        self,
        question_text: str,
        answers: Iterable[Union[AnswerItem, Mapping[str, Any]]],
        max_grade: float,
        rubric: Optional[str] = None,
        grader_info: Optional[str] = None,
    ) -> Dict[Any, GradingResult]:
        # One call per answer; a failing answer never stops the others
        results = {}
        for answer in answers:
            if isinstance(answer, Mapping):
                try:
                    answer = AnswerItem(**answer)
                except ValidationError as e:
                    logger.warning(f"⚠️ Skipping malformed answer {answer.get('id')}: {e.error_count()} errors")
                    results[answer.get("id")] = GradingResult.failure(self._describe_invalid_request(e))
                    continue
            results[answer.id] = self.suggest_grade(question_text, answer.text, max_grade, rubric, grader_info)
        return results

    def test_connection(self) -> ConnectionTestResult:
        """Send a placeholder grading request and map the HTTP status to a message."""
        if not self.is_configured():
            return ConnectionTestResult(success=False, message=messages.NO_API_KEY)

        try:
            response = self._send(self.probe_payload())
        except httpx.RequestError as e:
            logger.warning(f"Connection test to {self.url} failed: {e}")
            return ConnectionTestResult(
                success=False,
                message=messages.CONNECTION_TRANSPORT_ERROR.format(_request_error_text(e)),
            )
        except Exception as e:
            # Bad header values or a malformed base URL fail before anything is sent
            logger.error(f"Connection test to {self.base_url} could not be sent: {e}", exc_info=True)
            return ConnectionTestResult(
                success=False,
                message=messages.CONNECTION_TRANSPORT_ERROR.format(e),
            )

        status = response.status_code
        if status == 200:
            return ConnectionTestResult(success=True, message=messages.CONNECTION_OK)
        if status == 401:
            return ConnectionTestResult(success=False, message=messages.CONNECTION_UNAUTHORIZED)
        if status == 503:
            return ConnectionTestResult(
                success=False,
                message=messages.CONNECTION_SERVICE_ERROR.format(self._nested_error_message(response)),
            )
        return ConnectionTestResult(success=False, message=messages.CONNECTION_HTTP_ERROR.format(status))

    # --- Helpers ---

    @staticmethod
    def _nested_error_message(response: httpx.Response) -> str:
        try:
            error = response.json().get("error")
        except (ValueError, AttributeError):
            error = None
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        return "Service unavailable"

    @staticmethod
    def _describe_invalid_request(error: ValidationError) -> str:
        first = error.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ()))
        if field == "answer_text":
            return messages.EMPTY_ANSWER
        return messages.INVALID_REQUEST.format(f"{field}: {first.get('msg', '')}")


class OpenAIGradingClient(GradingClient):
    """Chat-completion backend (OpenAI or any compatible provider)."""
    endpoint_path = "/chat/completions"

    def __init__(self, settings: Settings, transport: Optional[httpx.BaseTransport] = None):
        super().__init__(settings, transport)
        self.model = settings.MODEL_NAME
        self.max_tokens = settings.MAX_TOKENS
        self.temperature = settings.TEMPERATURE

    def headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

    def build_payload(self, request: GradingRequest) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": request.system_prompt or ""},
                {"role": "user", "content": prompt_service.build_grading_prompt(request)},
            ],
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "response_format": {"type": "json_object"},
        }

    def probe_payload(self) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": [{"role": "user", "content": "Test connection"}],
            "max_tokens": 1,
        }

    def parse_response(self, response: httpx.Response, max_grade: float) -> GradingResult:
        try:
            content = response.json()["choices"][0]["message"]["content"]
            grade_data = json.loads(clean_json_string(content))
        except (ValueError, KeyError, IndexError, TypeError, AttributeError):
            return GradingResult.failure(messages.INVALID_RESPONSE)
        return build_result(grade_data, max_grade)


class GradingProxyClient(GradingClient):
    """Purpose-built grading proxy exposing POST /api/moodle/grade."""
    endpoint_path = "/api/moodle/grade"

    def headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "X-API-KEY": self.api_key,
            "Accept": "application/json",
        }

    def build_payload(self, request: GradingRequest) -> Dict[str, Any]:
        return {
            "questiontext": request.question_text,
            "answertext": request.answer_text,
            "maxgrade": request.max_grade,
            "rubric": request.rubric or "",
            "graderinfo": request.grader_info or "",
            "systemprompt": prompt_service.build_system_prompt(request),
        }

    def probe_payload(self) -> Dict[str, Any]:
        return {
            "questiontext": "Test connection",
            "answertext": "Test",
            "maxgrade": 100,
            "rubric": "",
            "graderinfo": "",
        }

    def parse_response(self, response: httpx.Response, max_grade: float) -> GradingResult:
        try:
            data = response.json()
        except ValueError:
            return GradingResult.failure(messages.INVALID_RESPONSE)
        if not isinstance(data, dict):
            return GradingResult.failure(messages.INVALID_RESPONSE)

        # Logical failures may come back as HTTP 200 with an "error" field
        if not data.get("success") and "grade" not in data and data.get("error"):
            error = data["error"]
            return GradingResult.failure(error if isinstance(error, str) else json.dumps(error))

        return build_result(data, max_grade)


GRADING_CLIENTS = {
    "openai": OpenAIGradingClient,
    "proxy": GradingProxyClient,
}


def create_grading_client(settings: Settings, transport: Optional[httpx.BaseTransport] = None) -> GradingClient:
    """Build the adapter selected by GRADING_BACKEND."""
    client_cls = GRADING_CLIENTS[settings.GRADING_BACKEND]
    logger.info(f"Using {client_cls.__name__} against {settings.base_url}")
    return client_cls(settings, transport)
