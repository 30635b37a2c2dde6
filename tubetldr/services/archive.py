import io
import re
import zipfile
from typing import Iterable
from pydantic import BaseModel

_UNSAFE_CHARS_RE = re.compile(r'[\\/:*?"<>|\x00-\x1f]+')

class ArchiveEntry(BaseModel):
    name: str
    summary: str = ""
    transcript: str = ""

def safe_name(name: str, max_length: int = 100) -> str:
    cleaned = _UNSAFE_CHARS_RE.sub("_", name).strip(" ._")
    return cleaned[:max_length].rstrip(" ._") or "video"

def build_archive(entries: Iterable[ArchiveEntry]) -> bytes:
    """Zip each entry as ``<name>/summary.md`` and ``<name>/transcript.txt``."""
    buffer = io.BytesIO()
    used = set()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for entry in entries:
            base = safe_name(entry.name)
            folder = base
            n = 2
            while folder.lower() in used:
                folder = f"{base} ({n})"
                n += 1
            used.add(folder.lower())
            zf.writestr(f"{folder}/summary.md", entry.summary)
            zf.writestr(f"{folder}/transcript.txt", entry.transcript)
    return buffer.getvalue()
