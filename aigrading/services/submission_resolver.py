import logging
from typing import List, Protocol

from aigrading.core.common import has_text, strip_tags
from aigrading.schemas.moodle import StoredFile
from aigrading.services.file_extractor import FileExtractor

logger = logging.getLogger("submission_resolver")


class GradableItem(Protocol):
    """Anything with inline text and attachments: assignment submissions, essay attempts."""
    online_text: str
    files: List[StoredFile]


class SubmissionResolver:
    def __init__(self, extractor: FileExtractor):
        self.extractor = extractor

    def resolve_text(self, submission: GradableItem) -> str:
        """
        Text to grade for a submission: the inline text with markup removed, otherwise the
        text of the first attachment that can be extracted. Empty string when nothing is usable.
        """
        text = strip_tags(submission.online_text)
        if has_text(text):
            return text

        for stored in sorted(submission.files, key=lambda f: (f.sortorder, f.id)):
            if not self.extractor.supports(stored.get_mimetype()):
                logger.info(f"Skipping unsupported attachment {stored.filename}")
                continue

            result = self.extractor.extract(stored)
            if result.success and has_text(result.text):
                logger.info(f"Using text extracted from {stored.filename}")
                return result.text
            logger.warning(f"No usable text in {stored.filename}: {result.error or 'empty'}")

        return ""
