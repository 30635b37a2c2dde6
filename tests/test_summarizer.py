from types import SimpleNamespace
import openai
import pytest
from tubetldr.core.errors import SummarizationFailed
from tubetldr.models.summary import SummaryOptions
from tubetldr.models.transcript import Segment, Transcript
from tubetldr.services.summarizer import SummarizerService, strip_code_fences
from tubetldr.utils.cache import CacheManager
from tubetldr.utils.chunker import Chunker

class WordEncoding:
    def encode(self, text):
        return text.split()

class FakeCompletions:
    def __init__(self, replies):
        self.replies = list(replies)
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=reply))])

class FakeClientFactory:
    def __init__(self, *replies):
        self.completions = FakeCompletions(replies)
        self.kwargs = None

    def __call__(self, **kwargs):
        self.kwargs = kwargs
        return SimpleNamespace(chat=SimpleNamespace(completions=self.completions))

def no_client(**kwargs):
    raise AssertionError("LLM client should not be created")

def word_chunker(limit):
    def factory(model_name, max_tokens):
        return Chunker(model_name, max_tokens=limit, encoding=WordEncoding())
    return factory

def _transcript(*texts, seconds=30.0):
    segments = [Segment(start=i * seconds, end=(i + 1) * seconds, text=t) for i, t in enumerate(texts)]
    return Transcript(video_id="AAAAAAAAAAA", language="en", title="Test Video", segments=segments)

def _options(**kwargs):
    kwargs.setdefault("api_key", "sk-test")
    kwargs.setdefault("model", "test-model")
    kwargs.setdefault("system_prompt", "Summarize.")
    return SummaryOptions(**kwargs)

@pytest.fixture
def cache(tmp_path):
    return CacheManager(str(tmp_path))

def test_dry_run_skips_llm(cache):
    service = SummarizerService(client_factory=no_client, cache=cache)
    summary = service.summarize(_transcript("hello"), _options(dry_run=True, api_key=None))
    assert summary.startswith("# Test Video")
    assert "1 caption segments" in summary

def test_transcript_only_returns_text(cache):
    service = SummarizerService(client_factory=no_client, cache=cache)
    assert service.summarize(_transcript(" hello ", "", "world"), _options(transcript_only=True)) == "hello world"

def test_empty_transcript_needs_no_llm(cache):
    service = SummarizerService(client_factory=no_client, cache=cache)
    assert service.summarize(_transcript(), _options(api_key=None)) == ""

def test_missing_api_key(cache):
    service = SummarizerService(client_factory=no_client, cache=cache)
    with pytest.raises(SummarizationFailed) as exc:
        service.summarize(_transcript("hello"), _options(api_key=None))
    assert exc.value.reason == "Missing API key"

def test_single_pass_summary(cache):
    factory = FakeClientFactory("```markdown\n# Summary\n- point\n```")
    service = SummarizerService(client_factory=factory, chunker_factory=word_chunker(1000), cache=cache)
    options = _options(base_url="https://llm.example/v1/", timeout=30, temperature=0.2)

    summary = service.summarize(_transcript("hello there", "general kenobi"), options)

    assert summary == "# Summary\n- point"
    assert factory.kwargs == {"api_key": "sk-test", "base_url": "https://llm.example/v1/", "timeout": 30.0, "max_retries": 0}
    [call] = factory.completions.calls
    assert call["model"] == "test-model"
    assert call["temperature"] == 0.2
    assert call["messages"][0] == {"role": "system", "content": "Summarize."}
    assert "Video title: Test Video" in call["messages"][1]["content"]
    assert "hello there general kenobi" in call["messages"][1]["content"]

def test_long_transcript_uses_map_reduce(cache):
    factory = FakeClientFactory("notes one", "notes two", "notes three", "final summary")
    service = SummarizerService(client_factory=factory, chunker_factory=word_chunker(5), cache=cache)
    transcript = _transcript("a b c d", "e f g h", "i j k l")

    assert service.summarize(transcript, _options()) == "final summary"

    calls = factory.completions.calls
    assert len(calls) == 4
    assert "part 1 of 3" in calls[0]["messages"][1]["content"]
    assert "00:30 - 01:00" in calls[1]["messages"][1]["content"]
    reduce_prompt = calls[3]["messages"][1]["content"]
    assert reduce_prompt.index("notes one") < reduce_prompt.index("notes two") < reduce_prompt.index("notes three")

def test_api_errors_become_summarization_failed(cache):
    factory = FakeClientFactory(openai.OpenAIError("invalid model"))
    service = SummarizerService(client_factory=factory, chunker_factory=word_chunker(1000), cache=cache)
    with pytest.raises(SummarizationFailed) as exc:
        service.summarize(_transcript("hello"), _options())
    assert exc.value.reason == "API error: invalid model"

def test_empty_reply_is_a_failure(cache):
    factory = FakeClientFactory("   ")
    service = SummarizerService(client_factory=factory, chunker_factory=word_chunker(1000), cache=cache)
    with pytest.raises(SummarizationFailed):
        service.summarize(_transcript("hello"), _options())

def test_summaries_are_cached(cache):
    first = SummarizerService(client_factory=FakeClientFactory("cached summary"), chunker_factory=word_chunker(1000), cache=cache)
    assert first.summarize(_transcript("hello"), _options()) == "cached summary"

    second = SummarizerService(client_factory=no_client, cache=cache)
    assert second.summarize(_transcript("hello"), _options()) == "cached summary"

    # a different prompt is a different cache entry
    third = SummarizerService(client_factory=FakeClientFactory("fresh"), chunker_factory=word_chunker(1000), cache=cache)
    assert third.summarize(_transcript("hello"), _options(system_prompt="Other.")) == "fresh"

def test_cache_can_be_bypassed(cache):
    SummarizerService(client_factory=FakeClientFactory("old"), chunker_factory=word_chunker(1000), cache=cache).summarize(_transcript("hello"), _options())
    service = SummarizerService(client_factory=FakeClientFactory("new"), chunker_factory=word_chunker(1000), cache=cache)
    assert service.summarize(_transcript("hello"), _options(use_cache=False)) == "new"

def test_strip_code_fences():
    assert strip_code_fences("plain") == "plain"
    assert strip_code_fences("```\ninner\n```") == "inner"

@pytest.mark.parametrize("changed", [
    {"base_url": "https://other.example/v1/"},
    {"temperature": 0.2},
])
def test_endpoint_settings_are_part_of_cache_key(cache, changed):
    SummarizerService(client_factory=FakeClientFactory("old"), chunker_factory=word_chunker(1000), cache=cache).summarize(_transcript("hello"), _options())
    service = SummarizerService(client_factory=FakeClientFactory("new"), chunker_factory=word_chunker(1000), cache=cache)
    assert service.summarize(_transcript("hello"), _options(**changed)) == "new"
