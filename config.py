import os
import json
import tempfile

from dotenv import load_dotenv

load_dotenv()

# ── Railway / Cloud Run: GCP service account from env var ─────────────────────
# Set GOOGLE_APPLICATION_CREDENTIALS_JSON to the full contents of your
# service account JSON key (copy-paste the entire JSON as a single env var).
# This writes it to a temp file and sets GOOGLE_APPLICATION_CREDENTIALS so
# the Firestore client picks it up automatically.
_sa_json = os.environ.get("GOOGLE_APPLICATION_CREDENTIALS_JSON", "").strip()
if _sa_json and not os.environ.get("GOOGLE_APPLICATION_CREDENTIALS"):
    try:
        _sa_data = json.loads(_sa_json)
        _sa_file = tempfile.NamedTemporaryFile(
            mode="w", suffix=".json", delete=False, prefix="gcp_sa_"
        )
        json.dump(_sa_data, _sa_file)
        _sa_file.close()
        os.environ["GOOGLE_APPLICATION_CREDENTIALS"] = _sa_file.name
    except (ValueError, OSError) as _e:
        import logging as _logging
        _logging.getLogger(__name__).warning(
            "Failed to write GOOGLE_APPLICATION_CREDENTIALS_JSON to temp file: %s", _e
        )

# ── Gemini classification ─────────────────────────────────────────────────────
GEMINI_MODEL = os.environ.get("GEMINI_MODEL", "gemini-2.5-flash")

# Vertex AI: set GOOGLE_GENAI_USE_VERTEXAI=true to use Vertex instead of AI Studio
# Also requires: GOOGLE_CLOUD_PROJECT and GOOGLE_CLOUD_LOCATION
_use_vertex = os.environ.get("GOOGLE_GENAI_USE_VERTEXAI", "false").lower() == "true"
if _use_vertex:
    os.environ["GOOGLE_GENAI_USE_VERTEXAI"] = "1"
    os.environ.setdefault("GOOGLE_CLOUD_LOCATION", "us-central1")
    # Vertex authenticates with the project credentials; a stray API key
    # makes the genai client refuse to initialise.
    os.environ.pop("GOOGLE_API_KEY", None)
    GEMINI_API_KEY = ""
else:
    # AI Studio mode: map GEMINI_API_KEY → GOOGLE_API_KEY which google-genai reads
    GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY", "") or os.environ.get("API_KEY", "")
    if GEMINI_API_KEY and not os.environ.get("GOOGLE_API_KEY"):
        os.environ["GOOGLE_API_KEY"] = GEMINI_API_KEY

USE_VERTEX_AI = _use_vertex
GOOGLE_CLOUD_PROJECT = os.environ.get("GOOGLE_CLOUD_PROJECT", "")
GOOGLE_CLOUD_LOCATION = os.environ.get("GOOGLE_CLOUD_LOCATION", "us-central1")

# Low temperature keeps the classification stable between identical messages
CLASSIFIER_TEMPERATURE = float(os.environ.get("CLASSIFIER_TEMPERATURE", "0.2"))
CLASSIFIER_MAX_RETRIES = int(os.environ.get("CLASSIFIER_MAX_RETRIES", "3"))
CLASSIFIER_RETRY_BASE_DELAY = float(os.environ.get("CLASSIFIER_RETRY_BASE_DELAY", "10"))

# Language of action_summary. Staff read every summary in the same language,
# whatever language the tenant wrote in.
SUMMARY_LANGUAGE = os.environ.get("SUMMARY_LANGUAGE", "es")

# ── Firestore (incident store) ────────────────────────────────────────────────
# Set FIRESTORE_ENABLED=false to run against the in-memory store (local dev).
# Uses GOOGLE_CLOUD_PROJECT for the database location.
# Local dev: gcloud auth application-default login
FIRESTORE_ENABLED = os.environ.get("FIRESTORE_ENABLED", "true").lower() == "true"
FIRESTORE_COLLECTION_PREFIX = os.environ.get("FIRESTORE_COLLECTION_PREFIX", "")
INCIDENTS_COLLECTION = os.environ.get("INCIDENTS_COLLECTION", "incidents")

# Seed the in-memory store with a few demo incidents (ignored with Firestore)
SEED_DEMO_DATA = os.environ.get("SEED_DEMO_DATA", "false").lower() == "true"

# ── Automation webhook (Make) ─────────────────────────────────────────────────
# Every classified incident is mirrored here. Empty disables the notification.
WEBHOOK_URL = os.environ.get("WEBHOOK_URL", "")
WEBHOOK_TIMEOUT_SECONDS = float(os.environ.get("WEBHOOK_TIMEOUT_SECONDS", "10"))
WEBHOOK_SOURCE_TAG = os.environ.get("WEBHOOK_SOURCE_TAG", "IncidenBot Web App")

# ── Property ──────────────────────────────────────────────────────────────────
COLIVING_NAME = os.environ.get("COLIVING_NAME", "Bali Coliving")
COLIVING_ROOMS = int(os.environ.get("COLIVING_ROOMS", "50"))

# Channel tag stored on every incident created by this portal
INCIDENT_SOURCE = os.environ.get("INCIDENT_SOURCE", "tenant_portal")

# Daily analytics buckets are computed in the property's local calendar
LOCAL_TIMEZONE = os.environ.get("LOCAL_TIMEZONE", "Asia/Makassar")

# ── Tenant portal ─────────────────────────────────────────────────────────────
DEFAULT_LANGUAGE = os.environ.get("DEFAULT_LANGUAGE", "es")

# Test mode pre-fills the demo identity and keeps it after a submission
TEST_MODE_DEFAULT = os.environ.get("TEST_MODE_DEFAULT", "true").lower() == "true"
DEMO_TENANT_NAME = os.environ.get("DEMO_TENANT_NAME", "James Bond")
DEMO_TENANT_ROOM = os.environ.get("DEMO_TENANT_ROOM", "007")

# Seconds the confirmation stays on screen before the session returns to login
SUCCESS_RESET_SECONDS = float(os.environ.get("SUCCESS_RESET_SECONDS", "15"))

# Portal sessions idle longer than this are dropped (0 keeps them until DELETE)
PORTAL_SESSION_TTL_SECONDS = float(os.environ.get("PORTAL_SESSION_TTL_SECONDS", "3600"))

# ── Staff dashboard ───────────────────────────────────────────────────────────
# Shared password for the staff view.
#   Authorization: Bearer PASSWORD  OR  ?key=PASSWORD
STAFF_PASSWORD = os.environ.get("STAFF_PASSWORD", "admin123")

# ── CORS ──────────────────────────────────────────────────────────────────────
# Comma-separated list of allowed origins.
# ADMIN_ORIGIN: URL where the staff dashboard is hosted.
# FRONTEND_ORIGIN: URL where the tenant portal is hosted.
# Defaults to ["*"] when neither is set (local dev).
_admin_origin = os.environ.get("ADMIN_ORIGIN", "")
_frontend_origin = os.environ.get("FRONTEND_ORIGIN", "")
_explicit_origins = [o.strip() for o in [_admin_origin, _frontend_origin] if o.strip()]
CORS_ORIGINS: list[str] = _explicit_origins if _explicit_origins else ["*"]
