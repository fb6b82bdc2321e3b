import os

GCP_PROJECT_ID = os.getenv("GCP_PROJECT_ID", "naqd-forum")
GCP_LOCATION = os.getenv("GCP_LOCATION", "us-central1")

# Secret Manager resource names
_SECRET_PREFIX = f"projects/{GCP_PROJECT_ID}/secrets"
AUTH_PASSWORD_HASH_SECRET = os.getenv(
    "AUTH_PASSWORD_HASH_SECRET", f"{_SECRET_PREFIX}/forum-auth-password-hash/versions/latest"
)
DELETE_PASSWORD_HASH_SECRET = os.getenv(
    "DELETE_PASSWORD_HASH_SECRET", f"{_SECRET_PREFIX}/forum-delete-password-hash/versions/latest"
)
GATE_TOKEN_SECRET = os.getenv("GATE_TOKEN_SECRET", f"{_SECRET_PREFIX}/forum-gate-token-key/versions/latest")
SESSION_SECRET = os.getenv("SESSION_SECRET", f"{_SECRET_PREFIX}/forum-session-key/versions/latest")

ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",") if h.strip()]

# Gate passwords
GATE_MAX_ATTEMPTS = int(os.getenv("GATE_MAX_ATTEMPTS", "3"))
GATE_TOKEN_EXPIRE_MINUTES = int(os.getenv("GATE_TOKEN_EXPIRE_MINUTES", "150"))
SESSION_MAX_AGE_SECONDS = int(os.getenv("SESSION_MAX_AGE_SECONDS", str(10 * 365 * 24 * 60 * 60)))

# Per kind. Both lists share the ~4 KB session cookie.
PROVENANCE_MAX_IDS = int(os.getenv("PROVENANCE_MAX_IDS", "25"))

MAX_THREAD_DEPTH = int(os.getenv("MAX_THREAD_DEPTH", "8"))
MAX_TEXT_FIELD_SIZE_KB = 500
MAX_TEXT_FIELD_SIZE_BYTES = MAX_TEXT_FIELD_SIZE_KB * 1024
LATEST_COMMENTS_LIMIT = 7
POST_PREVIEW_LENGTH = 150
COMMENT_PREVIEW_LENGTH = 100

TEXT_GEN_MODEL_NAME = os.getenv("TEXT_GEN_MODEL_NAME", "gemini-2.5-flash")

# Local overrides for the signing keys; Secret Manager is used when unset.
SESSION_SECRET_KEY = os.getenv("SESSION_SECRET_KEY")
GATE_TOKEN_KEY = os.getenv("GATE_TOKEN_KEY")
