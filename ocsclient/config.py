import os
from dotenv import load_dotenv

load_dotenv()

OCS_BASE_URL = os.getenv("OCS_BASE_URL", "https://api.opendesktop.org/v1/")
OCS_PROVIDER_NAME = os.getenv("OCS_PROVIDER_NAME", "opendesktop.org")

# "xml" or "json"; the provider picks the parser once per job from this
OCS_WIRE_FORMAT = os.getenv("OCS_WIRE_FORMAT", "xml").lower()

# Drop individually broken list elements instead of failing the whole list
OCS_LENIENT_LISTS = os.getenv("OCS_LENIENT_LISTS", "true").lower() in ("1", "true", "yes", "on")

OCS_USER = os.getenv("OCS_USER", "")
OCS_PASSWORD = os.getenv("OCS_PASSWORD", "")

OCS_DEFAULT_PAGE_SIZE = int(os.getenv("OCS_DEFAULT_PAGE_SIZE", "10"))
OCS_SERVICE_VERSION = os.getenv("OCS_SERVICE_VERSION", "1.6")

HTTP_CONNECT_TIMEOUT_S = float(os.getenv("HTTP_CONNECT_TIMEOUT_S", "3.0"))
HTTP_READ_TIMEOUT_S = float(os.getenv("HTTP_READ_TIMEOUT_S", "30.0"))
HTTP_MAX_WORKERS = int(os.getenv("HTTP_MAX_WORKERS", "4"))
HTTP_USER_AGENT = os.getenv("HTTP_USER_AGENT", "ocs-client/0.1")

# Sub-services a provider may advertise a version for
SERVICES = (
    "activity",
    "comment",
    "content",
    "event",
    "fan",
    "friend",
    "knowledgebase",
    "message",
    "person",
)
