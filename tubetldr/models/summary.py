from typing import Optional
from pydantic import BaseModel, Field
from tubetldr.config import DEFAULT_SYSTEM_PROMPT

class SummaryOptions(BaseModel):
    """Options passed through to the summarizer for every item of a batch."""
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    model: str = "gemini-2.5-flash"
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    temperature: float = 1.0
    timeout: float = Field(default=120.0, gt=0)
    max_chunk_tokens: int = Field(default=24000, gt=0)
    dry_run: bool = False
    transcript_only: bool = False
    use_cache: bool = True
