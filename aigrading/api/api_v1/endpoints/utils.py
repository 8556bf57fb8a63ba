from fastapi import APIRouter, Depends
import logging

from aigrading.api.deps import get_grading_client
from aigrading.schemas.grading import ConnectionTestResult
from aigrading.services.file_extractor import FileExtractor
from aigrading.services.grading_client import GradingClient

logger = logging.getLogger("utils_endpoint")

router = APIRouter()


@router.get("/test-connection", response_model=ConnectionTestResult)
def test_grading_connection(client: GradingClient = Depends(get_grading_client)):
    """
    Check that the configured grading backend is reachable and accepts the API key.
    Sends a placeholder grading request; nothing is stored.
    """
    result = client.test_connection()
    if result.success:
        logger.info(f"✅ Connection test to {client.url} succeeded")
    else:
        logger.warning(f"⚠️ Connection test to {client.url}: {result.message}")
    return result


@router.get("/supported-formats")
def supported_formats():
    """
    File extensions the extractor can read text from.
    """
    return {"extensions": FileExtractor.supported_extensions()}
