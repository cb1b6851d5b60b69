"""
Small request/response helpers shared by the routes.
"""

from restohub.utils.etag import send_with_etag
from restohub.utils.webhook_verify import verify_hmac

__all__ = ["send_with_etag", "verify_hmac"]
