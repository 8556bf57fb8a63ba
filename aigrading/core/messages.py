"""User-visible messages returned by the grading pipeline."""

NO_API_KEY = "API key is not configured. Please configure it in plugin settings."
API_ERROR = "Grading API error: {}"
INVALID_RESPONSE = "Invalid response from AI. Please try again."
EMPTY_ANSWER = "No answer text to grade."
INVALID_REQUEST = "Invalid grading request: {}"

UNSUPPORTED_FILE = "Unsupported file type: {}"
DOC_NOT_AVAILABLE = "DOC extraction not available. Install antiword or catdoc."
TRUNCATION_NOTICE = "\n\n[... Text truncated due to length limit ...]"

NO_SUBMISSION = "No submission found."
NO_TEXT_CONTENT = (
    "No text content found in submission. "
    "Only PDF, DOCX, DOC, TXT and HTML files are supported."
)

NO_UNGRADED_ATTEMPTS = "No ungraded attempts found. All essays may have been graded already."
NO_UNGRADED_QUIZ_ATTEMPTS = "No ungraded essay attempts found in this quiz."
NO_UNGRADED_SUBMISSIONS = "No ungraded submissions found."
QUESTION_DONE = "Graded {graded} attempts, {failed} failed."
QUIZ_DONE = "Graded {graded} attempts across all questions, {failed} failed."
ASSIGNMENT_DONE = "Graded {graded} submissions, {failed} failed."

CONNECTION_OK = "Connection successful! The grading API is reachable and the API key is valid."
CONNECTION_UNAUTHORIZED = "Connection failed: the API key was rejected (HTTP 401)."
CONNECTION_SERVICE_ERROR = "Connection failed: grading service unavailable ({})."
CONNECTION_HTTP_ERROR = "Connection failed: HTTP error {}."
CONNECTION_TRANSPORT_ERROR = "Connection failed: {}"
