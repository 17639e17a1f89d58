"""Security helpers: PII masking and webhook signature checks."""
import base64
import hashlib
import hmac
import re
from typing import Mapping

def mask_pii(text: str) -> str:
    """Hide phone numbers and e-mail addresses before they reach the logs."""
    if not text:
        return text
    masked = re.sub(r"\+?\d[\d\-\s]{7,}\d", lambda m: "*" * (len(m.group()) - 3) + m.group()[-3:], text)
    masked = re.sub(r"[^@\s]+@([^@\s]+)", r"***@\1", masked)
    return masked


def compute_twilio_signature(auth_token: str, url: str, params: Mapping[str, str]) -> str:
    """
    Compute the X-Twilio-Signature value for a webhook request.

    Args:
        auth_token: Account auth token (shared secret)
        url: Full public URL Twilio posted to, including the query string
        params: POST form parameters

    Returns:
        Base64 encoded HMAC-SHA1 of the URL followed by the sorted key/value pairs
    """
    data = url + "".join(key + str(params[key]) for key in sorted(params))
    digest = hmac.new(auth_token.encode("utf-8"), data.encode("utf-8"), hashlib.sha1).digest()
    return base64.b64encode(digest).decode("ascii")


def validate_twilio_signature(auth_token: str, url: str, params: Mapping[str, str], signature: str) -> bool:
    if not auth_token or not signature:
        return False
    expected = compute_twilio_signature(auth_token, url, params)
    return hmac.compare_digest(expected.encode("ascii"), signature.encode("utf-8"))
