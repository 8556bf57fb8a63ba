from aigrading.schemas.grading import GradingRequest
from aigrading.services.prompt_service import UNCERTAINTY_GUIDANCE, prompt_service


def test_prompt_with_context():
    request = GradingRequest(question_text="Q?", answer_text="A.", max_grade=7.5,
                             rubric="Use evidence", grader_info="Model answer")

    prompt = prompt_service.build_grading_prompt(request)

    assert "## Question:\nQ?" in prompt
    assert "## Student Answer:\nA." in prompt
    assert "## Maximum Grade: 7.5" in prompt
    assert "Model answer" in prompt
    assert "Use evidence" in prompt
    assert UNCERTAINTY_GUIDANCE not in prompt
    assert "'confidence'" in prompt


def test_prompt_without_context_asks_for_uncertainty():
    request = GradingRequest(question_text="Q?", answer_text="A.", max_grade=10)

    prompt = prompt_service.build_grading_prompt(request)

    assert "## Maximum Grade: 10\n" in prompt
    assert UNCERTAINTY_GUIDANCE in prompt
    assert prompt_service.build_system_prompt(request) == UNCERTAINTY_GUIDANCE


def test_system_prompt_untouched_with_context():
    request = GradingRequest(question_text="Q", answer_text="A", max_grade=1,
                             rubric="r", system_prompt="Be fair.")

    assert prompt_service.build_system_prompt(request) == "Be fair."
