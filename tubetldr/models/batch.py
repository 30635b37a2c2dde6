from typing import List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field
from tubetldr.core.errors import ErrorKind
from tubetldr.models.summary import SummaryOptions
from tubetldr.models.transcript import Transcript

class BatchConfig(BaseModel):
    """Explicit configuration for one batch call.

    Nothing in the pipeline reads global settings; the CLI and the HTTP
    server build one of these per call with :meth:`from_settings`.
    """
    language: str = "en"
    max_concurrency: int = Field(default=4, ge=1)
    request_timeout: float = Field(default=10.0, gt=0)
    batch_timeout: Optional[float] = Field(default=None, gt=0)
    client_name: str = "ANDROID"
    client_version: str = "20.10.38"
    user_agent: Optional[str] = None
    summary: SummaryOptions = Field(default_factory=SummaryOptions)

    @classmethod
    def from_settings(cls, settings, **overrides) -> "BatchConfig":
        """Build a config from ``Settings`` defaults, applying non-None overrides.

        Overrides named after a :class:`SummaryOptions` field go to ``summary``,
        everything else to the batch config itself.
        """
        overrides = {k: v for k, v in overrides.items() if v is not None}
        summary_keys = set(SummaryOptions.model_fields)

        summary = {
            "api_key": settings.LLM_API_KEY,
            "base_url": settings.LLM_BASE_URL,
            "model": settings.LLM_MODEL,
            "system_prompt": settings.SYSTEM_PROMPT,
            "temperature": settings.LLM_TEMPERATURE,
            "timeout": settings.LLM_TIMEOUT,
            "max_chunk_tokens": settings.CHUNK_MAX_TOKENS,
        }
        summary.update({k: v for k, v in overrides.items() if k in summary_keys})

        config = {
            "language": settings.TRANSCRIPT_LANG,
            "max_concurrency": settings.MAX_CONCURRENCY,
            "request_timeout": settings.REQUEST_TIMEOUT,
            "batch_timeout": settings.BATCH_TIMEOUT,
            "client_name": settings.INNERTUBE_CLIENT_NAME,
            "client_version": settings.INNERTUBE_CLIENT_VERSION,
            "user_agent": settings.USER_AGENT,
        }
        config.update({k: v for k, v in overrides.items() if k not in summary_keys})
        return cls(summary=SummaryOptions(**summary), **config)

class PipelineSuccess(BaseModel):
    status: Literal["success"] = "success"
    url: str
    video_id: str
    title: str
    transcript: Transcript
    summary: str

class PipelineFailure(BaseModel):
    status: Literal["failure"] = "failure"
    url: str
    video_id: Optional[str] = None
    kind: ErrorKind
    reason: str

PipelineResult = Union[PipelineSuccess, PipelineFailure]

class BatchRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    urls: List[str]
    language: Optional[str] = None
    api_key: Optional[str] = Field(default=None, alias="apiKey")
    model: Optional[str] = None
    system_prompt: Optional[str] = Field(default=None, alias="systemPrompt")
    dry_run: bool = Field(default=False, alias="dryRun")
    transcript_only: bool = Field(default=False, alias="transcriptOnly")
    use_cache: bool = Field(default=True, alias="useCache")

    def overrides(self) -> dict:
        """Keyword overrides for :meth:`BatchConfig.from_settings`."""
        return {
            "language": self.language or None,
            "api_key": self.api_key or None,
            "model": self.model or None,
            "system_prompt": self.system_prompt or None,
            "dry_run": self.dry_run,
            "transcript_only": self.transcript_only,
            "use_cache": self.use_cache,
        }

class BatchItemResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    url: str
    video_name: Optional[str] = Field(default=None, alias="videoName")
    summary: Optional[str] = None
    subtitles: Optional[str] = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = Field(default=None, alias="errorKind")

    @classmethod
    def from_result(cls, result: PipelineResult) -> "BatchItemResponse":
        if isinstance(result, PipelineSuccess):
            return cls(
                url=result.url,
                video_name=result.title,
                summary=result.summary,
                subtitles=result.transcript.text(),
            )
        return cls(url=result.url, error=result.reason, error_kind=result.kind)
