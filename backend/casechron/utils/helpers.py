"""
Utility helper functions
"""
from datetime import datetime
import os
import re
import uuid


def utc_now_iso() -> str:
    """Current UTC time as ISO-8601 with a Z suffix"""
    return datetime.utcnow().isoformat(timespec="milliseconds") + "Z"


def safe_filename(filename: str) -> str:
    """Strip path components and characters unsafe for object keys"""
    base = re.sub(r"[^A-Za-z0-9._-]+", "_", os.path.basename((filename or "").strip()))
    return base[:160] or f"document_{uuid.uuid4().hex[:8]}"


def file_extension(filename: str) -> str:
    """Lower-cased extension including the dot, or empty string"""
    return os.path.splitext(filename or "")[1].lower()
