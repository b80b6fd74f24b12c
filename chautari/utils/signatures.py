import hashlib
from datetime import datetime
from typing import Optional


def compute_signature_checksum(*parts: Optional[object]) -> str:
    """
    SHA-256 hex digest over the pipe-joined parts of a signature record.
    Datetimes are rendered in ISO 8601 and None as an empty string.
    """
    rendered = []
    for part in parts:
        if part is None:
            rendered.append("")
        elif isinstance(part, datetime):
            rendered.append(part.isoformat())
        else:
            rendered.append(str(part))
    return hashlib.sha256("|".join(rendered).encode("utf-8")).hexdigest()
