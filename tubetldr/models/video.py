from typing import Optional
from pydantic import BaseModel

class VideoReference(BaseModel):
    raw_input: str
    video_id: str

class CaptionTrack(BaseModel):
    language_code: str
    fetch_url: str
    is_auto_generated: bool = False
    name: Optional[str] = None
