"""
Application constants.

These values are intentionally not configurable via environment variables.
"""

SERVICE_NAME = "visit-compliance-engine"
SERVICE_VERSION = "0.1.0"

# Request headers
USER_ID_HEADER = "X-User-Id"
REQUEST_ID_HEADER = "X-Request-ID"

# Request correlation IDs
GENERATED_REQUEST_ID_LENGTH = 8
MAX_REQUEST_ID_LENGTH = 64
