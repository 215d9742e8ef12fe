"""
Constants for Agent Desk.
Defaults for the backend contract and the chat view.
"""


# ----- Backend -----

DEFAULT_API_BASE_URL = "http://localhost:8000"

# Header carrying the bearer credential on every call
TOKEN_HEADER = "Token"

# Page size for history loads
DEFAULT_HISTORY_LIMIT = 200

# Multipart field name for file uploads
UPLOAD_FIELD_NAME = "files"

# Path segment marking uploaded-file URLs
FILES_PATH_SEGMENT = "/files/"


# ----- Chat -----

DEFAULT_GREETING = "Hello! I'm your assistant. How can I help you today?"

UPLOAD_FAILED_MESSAGE = "Failed to upload the files. Please try again."

SESSION_RECOVERY_FAILED_MESSAGE = (
    "Error: the session could not be recovered. Please reload."
)

GENERIC_SEND_ERROR_MESSAGE = (
    "An error occurred while processing your request. Please try again."
)


# ----- Persistence -----

SESSION_SLOT_KEY = "session.last_active"
SESSION_SLOT_CATEGORY = "session"
