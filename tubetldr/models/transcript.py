from typing import List, Optional
from pydantic import BaseModel, Field, model_validator

def format_time(seconds: float) -> str:
    m, s = divmod(int(seconds), 60)
    h, m = divmod(m, 60)
    if h > 0:
        return f"{h:02d}:{m:02d}:{s:02d}"
    return f"{m:02d}:{s:02d}"

class Segment(BaseModel):
    start: float = Field(ge=0)
    end: float
    text: str

    @model_validator(mode="after")
    def check_end_after_start(self):
        if self.end < self.start:
            raise ValueError(f"segment ends ({self.end}) before it starts ({self.start})")
        return self

class Transcript(BaseModel):
    video_id: str
    language: str
    title: Optional[str] = None
    # Source order is authoritative; segments are never re-sorted.
    segments: List[Segment] = []

    def text(self) -> str:
        """Plain caption text, one space between cues."""
        return " ".join(s.text.strip() for s in self.segments if s.text.strip())
