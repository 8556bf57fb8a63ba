from functools import lru_cache

from aigrading.core.config import settings
from aigrading.services.auto_grader import AutoGrader
from aigrading.services.file_extractor import FileExtractor
from aigrading.services.grading_client import GradingClient, create_grading_client
from aigrading.services.grading_store import GradingStore, JsonGradingStore
from aigrading.services.submission_resolver import SubmissionResolver

# Services are built once from the process settings and injected into the endpoints.


@lru_cache()
def get_file_extractor() -> FileExtractor:
    return FileExtractor(settings)


@lru_cache()
def get_grading_client() -> GradingClient:
    return create_grading_client(settings)


@lru_cache()
def get_grading_store() -> GradingStore:
    return JsonGradingStore(settings.STORE_PATH)


@lru_cache()
def get_auto_grader() -> AutoGrader:
    return AutoGrader(
        store=get_grading_store(),
        client=get_grading_client(),
        resolver=SubmissionResolver(get_file_extractor()),
    )
