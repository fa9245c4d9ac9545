"""
Utility helper functions
"""
import mimetypes
import os
import secrets
import string
import time

_ID_ALPHABET = string.ascii_lowercase + string.digits

_EXTENSION_OVERRIDES = {
    "application/msword": "doc",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "docx",
    "text/plain": "txt",
    "image/jpeg": "jpg",
}


def random_id(length: int = 9) -> str:
    """Short base36 id, e.g. 'k3j9x0q2m'"""
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(length))


def file_extension(filename: str, content_type: str = "") -> str:
    ext = os.path.splitext(filename or "")[1].lstrip(".").lower()
    if ext:
        return ext
    if content_type in _EXTENSION_OVERRIDES:
        return _EXTENSION_OVERRIDES[content_type]
    guessed = mimetypes.guess_extension(content_type or "") or ""
    return guessed.lstrip(".") or "bin"


def generate_storage_key(filename: str, content_type: str = "") -> str:
    """Object key in the form {timestamp}_{randomId}.{ext}"""
    return f"{int(time.time() * 1000)}_{random_id()}.{file_extension(filename, content_type)}"


def truncate_text(text: str, length: int = 100) -> str:
    """Truncate text to specified length"""
    if len(text) <= length:
        return text
    return text[:length] + "..."


def format_kb(size: int) -> str:
    return f"{(size or 0) / 1024:.1f}KB"
