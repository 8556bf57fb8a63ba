import contextlib
import html
import logging
import os
import re
import subprocess
import tempfile
import zipfile
from enum import Enum
from typing import Callable, Dict, Iterator, List, Optional

import fitz  # PyMuPDF
from docx import Document

from aigrading.core import messages
from aigrading.core.config import Settings
from aigrading.schemas.extraction import ExtractionResult
from aigrading.schemas.moodle import StoredFile

logger = logging.getLogger("file_extractor")

SUPPORTED_EXTENSIONS = ["pdf", "docx", "doc", "txt", "html", "htm"]


class ExtractionError(Exception):
    """Expected extraction failure, reported back as a failed ExtractionResult."""


class DocumentFormat(Enum):
    PDF = "pdf"
    DOCX = "docx"
    DOC = "doc"
    TXT = "txt"
    HTML = "html"
    UNSUPPORTED = "unsupported"

    @classmethod
    def from_mimetype(cls, mimetype: Optional[str]) -> "DocumentFormat":
        return _MIMETYPE_FORMATS.get((mimetype or "").split(";")[0].strip().lower(), cls.UNSUPPORTED)


_MIMETYPE_FORMATS = {
    "application/pdf": DocumentFormat.PDF,
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": DocumentFormat.DOCX,
    "application/msword": DocumentFormat.DOC,
    "text/plain": DocumentFormat.TXT,
    "text/html": DocumentFormat.HTML,
}


def _local_name(tag) -> str:
    # lxml comments / processing instructions have non-string tags
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1].split(":")[-1]


class FileExtractor:
    def __init__(self, settings: Settings):
        self.max_text_length = settings.MAX_TEXT_LENGTH
        self.temp_dir = settings.TEMP_DIR

        # Pre-compile regex
        self.pattern_tags = re.compile(r"<[^>]*>")
        self.pattern_script = re.compile(r"<script[^>]*>.*?</script>", re.IGNORECASE | re.DOTALL)
        self.pattern_style = re.compile(r"<style[^>]*>.*?</style>", re.IGNORECASE | re.DOTALL)
        self.pattern_spaces = re.compile(r"[^\S\n]+")
        self.pattern_line_edges = re.compile(r" *\n *")
        self.pattern_blank_lines = re.compile(r"\n\s*\n")
        self.pattern_whitespace = re.compile(r"\s+")
        self.pattern_control = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
        self.pattern_docx_paragraph_end = re.compile(r"</w:p>")

        self._strategies: Dict[DocumentFormat, Callable[[StoredFile], str]] = {
            DocumentFormat.PDF: self._extract_pdf,
            DocumentFormat.DOCX: self._extract_docx,
            DocumentFormat.DOC: self._extract_doc,
            DocumentFormat.TXT: self._extract_txt,
            DocumentFormat.HTML: self._extract_html,
        }

    @staticmethod
    def supported_extensions() -> List[str]:
        return list(SUPPORTED_EXTENSIONS)

    def supports(self, mimetype: Optional[str]) -> bool:
        return DocumentFormat.from_mimetype(mimetype) is not DocumentFormat.UNSUPPORTED

    def extract(self, file: StoredFile) -> ExtractionResult:
        mimetype = file.get_mimetype()
        doc_format = DocumentFormat.from_mimetype(mimetype)

        if doc_format is DocumentFormat.UNSUPPORTED:
            return ExtractionResult.failure(messages.UNSUPPORTED_FILE.format(mimetype))

        logger.info(f"📄 Extracting {file.filename} as {doc_format.value}")
        try:
            text = self._strategies[doc_format](file)
        except Exception as e:
            logger.error(f"Error extracting {file.filename}: {e}")
            return ExtractionResult.failure(str(e))

        return ExtractionResult.ok(self._truncate(text).strip())

    def _truncate(self, text: str) -> str:
        if len(text) > self.max_text_length:
            logger.info(f"Truncating extracted text from {len(text)} to {self.max_text_length} chars")
            return text[:self.max_text_length] + messages.TRUNCATION_NOTICE
        return text

    # --- Helpers ---

    @contextlib.contextmanager
    def _materialize(self, file: StoredFile, suffix: str) -> Iterator[str]:
        """Copy the stored file to a temp path that is removed on every exit path."""
        fd, path = tempfile.mkstemp(prefix="aigrading_", suffix=suffix, dir=self.temp_dir)
        os.close(fd)
        try:
            file.copy_content_to(path)
            yield path
        finally:
            with contextlib.suppress(FileNotFoundError):
                os.unlink(path)

    @staticmethod
    def _decode(data: bytes) -> str:
        return data.decode("utf-8", errors="replace")

    @staticmethod
    def _run_tool(args: List[str]) -> Optional[subprocess.CompletedProcess]:
        """Run an external converter. Returns None when it is missing or cannot be executed."""
        try:
            return subprocess.run(args, stdout=subprocess.PIPE, stderr=subprocess.PIPE, check=False)
        except OSError as e:
            logger.warning(f"{args[0]} could not be run: {e}")
            return None

    # --- Strategies ---

    def _extract_pdf(self, file: StoredFile) -> str:
        with self._materialize(file, ".pdf") as path:
            proc = self._run_tool(["pdftotext", "-layout", path, "-"])
            if proc is None:
                text = self._parse_pdf_with_pymupdf(path)
            elif proc.returncode != 0:
                diagnostic = (self._decode(proc.stderr) + self._decode(proc.stdout)).strip()
                raise ExtractionError(f"pdftotext failed: {diagnostic}")
            else:
                text = self._decode(proc.stdout)

        if not text.strip():
            raise ExtractionError("PDF contains no text (it may be a scanned image)")
        return text

    @staticmethod
    def _parse_pdf_with_pymupdf(path: str) -> str:
        pages = []
        with fitz.open(path) as doc:
            for page in doc:
                # sort=True keeps reading order close to the printed layout
                pages.append(page.get_text(sort=True))
        return "\n".join(pages)

    def _extract_docx(self, file: StoredFile) -> str:
        with self._materialize(file, ".docx") as path:
            try:
                document = Document(path)
            except Exception as e:
                logger.warning(f"Could not parse {file.filename} as DOCX ({e}), stripping raw XML instead")
                return self._strip_docx_xml(path)

            paragraphs: List[str] = []
            self._collect_text(document.element.body, paragraphs)
            return "\n".join(paragraphs)

    def _collect_text(self, node, out: List[str]):
        name = _local_name(node.tag)

        # Runs of one paragraph are joined without a separator
        if name == "p":
            runs: List[str] = []
            for child in node:
                self._collect_text(child, runs)
            if runs:
                out.append("".join(runs))
            return

        if name == "t":
            out.append(node.text or "")
            return

        for child in node:
            self._collect_text(child, out)

    def _strip_docx_xml(self, path: str) -> str:
        try:
            with zipfile.ZipFile(path) as archive:
                xml_content = archive.read("word/document.xml")
        except zipfile.BadZipFile:
            raise ExtractionError("Failed to open DOCX file")
        except KeyError:
            raise ExtractionError("Failed to read DOCX content")

        content = self._decode(xml_content)
        content = self.pattern_docx_paragraph_end.sub("\n", content)
        return html.unescape(self.pattern_tags.sub("", content))

    def _extract_doc(self, file: StoredFile) -> str:
        with self._materialize(file, ".doc") as path:
            for tool in ("antiword", "catdoc"):
                proc = self._run_tool([tool, path])
                if proc is not None and proc.returncode == 0:
                    return self._decode(proc.stdout)

            with open(path, "rb") as f:
                raw = f.read()

        # Last resort: keep whatever printable text survives in the binary
        text = self.pattern_control.sub(" ", raw.decode("utf-8", errors="ignore"))
        text = self.pattern_whitespace.sub(" ", text).strip()
        if len(text) > 100:
            return text

        raise ExtractionError(messages.DOC_NOT_AVAILABLE)

    def _extract_txt(self, file: StoredFile) -> str:
        return self._decode(file.get_content())

    def _extract_html(self, file: StoredFile) -> str:
        content = self._decode(file.get_content())

        content = self.pattern_script.sub("", content)
        content = self.pattern_style.sub("", content)

        text = html.unescape(self.pattern_tags.sub("", content))

        text = self.pattern_spaces.sub(" ", text)
        text = self.pattern_line_edges.sub("\n", text)
        text = self.pattern_blank_lines.sub("\n\n", text)
        return text.strip()
