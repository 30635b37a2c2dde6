import hashlib
import os
from typing import Callable, List, Optional
import openai
from jinja2 import Environment, FileSystemLoader
from openai import OpenAI
from tubetldr.core.errors import SummarizationFailed
from tubetldr.models.summary import SummaryOptions
from tubetldr.models.transcript import Segment, Transcript, format_time
from tubetldr.utils.cache import CacheManager, cache_manager
from tubetldr.utils.chunker import Chunker
from tubetldr.utils.logger import logger
from tubetldr.utils.retry import api_retry

PROMPTS_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "prompts")
CACHE_VERSION = "v2"

def strip_code_fences(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        end_idx = text.rfind("```")
        if end_idx > 0:
            return text[text.find("\n") + 1:end_idx].strip()
    return text

class SummarizerService:
    """Turns a transcript into a Markdown summary with an OpenAI-compatible chat API.

    Long transcripts are summarized map-reduce style: each chunk gets its own
    notes, then the notes are summarized together.
    """

    def __init__(
        self,
        client_factory: Callable[..., OpenAI] = OpenAI,
        chunker_factory: Callable[..., Chunker] = Chunker,
        cache: Optional[CacheManager] = None,
    ):
        self.client_factory = client_factory
        self.chunker_factory = chunker_factory
        self.cache = cache or cache_manager
        self.env = Environment(loader=FileSystemLoader(PROMPTS_DIR))
        self.user_template = self.env.get_template("user.jinja2")
        self.map_template = self.env.get_template("map.jinja2")
        self.reduce_template = self.env.get_template("reduce.jinja2")
        self.dry_run_template = self.env.get_template("dry_run.md.jinja2")

    @api_retry()
    def _call_llm(self, client: OpenAI, options: SummaryOptions, prompt: str) -> str:
        response = client.chat.completions.create(
            model=options.model,
            messages=[
                {"role": "system", "content": options.system_prompt},
                {"role": "user", "content": prompt}
            ],
            temperature=options.temperature
        )
        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            raise SummarizationFailed("The API response did not contain any text")
        return strip_code_fences(content)

    def _cache_key(self, transcript: Transcript, options: SummaryOptions) -> str:
        # same model name on another endpoint is a different model
        settings_hash = hashlib.sha256(
            f"{options.base_url}\n{options.temperature!r}\n{options.system_prompt}".encode()
        ).hexdigest()[:16]
        return f"{transcript.video_id}_{transcript.language}_{options.model}_{settings_hash}_{CACHE_VERSION}"

    def _summarize_chunks(self, client: OpenAI, options: SummaryOptions, title: str, chunks: List[List[Segment]]) -> str:
        logger.info(f"Starting Map phase for {len(chunks)} chunks of '{title}'...")
        notes = []
        for i, chunk in enumerate(chunks):
            logger.debug(f"Processing chunk {i+1}/{len(chunks)}...")
            prompt = self.map_template.render(
                title=title,
                index=i + 1,
                total=len(chunks),
                start_time=format_time(chunk[0].start),
                end_time=format_time(chunk[-1].end),
                text="\n".join(s.text for s in chunk)
            )
            notes.append(self._call_llm(client, options, prompt))

        logger.info("Starting Reduce phase...")
        return self._call_llm(client, options, self.reduce_template.render(title=title, notes=notes))

    def summarize(self, transcript: Transcript, options: SummaryOptions) -> str:
        title = transcript.title or transcript.video_id
        if options.dry_run:
            return self.dry_run_template.render(
                title=title,
                video_id=transcript.video_id,
                segment_count=len(transcript.segments)
            )

        text = transcript.text()
        if options.transcript_only:
            return text
        if not text:
            logger.info(f"Transcript of {transcript.video_id} is empty; nothing to summarize.")
            return ""
        if not options.api_key:
            raise SummarizationFailed("Missing API key")

        cache_key = self._cache_key(transcript, options)
        if options.use_cache:
            cached = self.cache.get_summary(cache_key)
            if cached is not None:
                return cached

        client = self.client_factory(
            api_key=options.api_key,
            base_url=options.base_url,
            timeout=options.timeout,
            max_retries=0
        )
        chunker = self.chunker_factory(model_name=options.model, max_tokens=options.max_chunk_tokens)

        try:
            chunks = chunker.chunk(transcript)
            if len(chunks) > 1:
                summary = self._summarize_chunks(client, options, title, chunks)
            else:
                summary = self._call_llm(client, options, self.user_template.render(title=title, transcript=text))
        except openai.OpenAIError as e:
            raise SummarizationFailed(f"API error: {e}")

        if options.use_cache:
            self.cache.save_summary(cache_key, summary)
        return summary
