import logging

from aigrading.schemas.grading import GradingRequest
from aigrading.services.token_service import token_service

logger = logging.getLogger("prompt_service")

# Used when the question has neither a model answer nor a rubric
UNCERTAINTY_GUIDANCE = (
    "No model answer or rubric was provided. "
    "Grade on: (1) completeness and clarity of the answer, "
    "(2) structure and coherence of the argument, (3) good use of language. "
    "If you are not sure about the factual correctness, "
    "set confidence to 'low' and describe the uncertainty in the explanation."
)


def _format_grade(value: float) -> str:
    return f"{value:g}"


class PromptService:
    def build_grading_prompt(self, request: GradingRequest) -> str:
        """User message for chat-completion style backends."""
        # 1. Question and answer
        prompt = f"## Question:\n{request.question_text}\n\n"
        prompt += f"## Student Answer:\n{request.answer_text}\n\n"
        prompt += f"## Maximum Grade: {_format_grade(request.max_grade)}\n\n"

        # 2. Grading context
        if request.grader_info:
            prompt += f"## Grading Information / Model Answer:\n{request.grader_info}\n\n"

        if request.rubric:
            prompt += f"## Grading Rubric:\n{request.rubric}\n\n"

        if not request.has_grading_context:
            prompt += f"## IMPORTANT NOTE:\n{UNCERTAINTY_GUIDANCE}\n\n"

        # 3. Output requirements
        prompt += "Return the assessment in the requested JSON format. "
        prompt += ("Include a 'confidence' field with the value 'high', 'medium' or 'low' "
                   "to indicate how certain the assessment is.")

        logger.info(f"Grading prompt built (~{token_service.count_tokens(prompt)} tokens)")
        return prompt

    def build_system_prompt(self, request: GradingRequest) -> str:
        """System prompt for backends that compose the user prompt themselves."""
        system_prompt = request.system_prompt or ""
        if request.has_grading_context:
            return system_prompt
        return f"{system_prompt}\n\n{UNCERTAINTY_GUIDANCE}".strip()


prompt_service = PromptService()
