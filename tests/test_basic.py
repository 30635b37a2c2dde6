from tubetldr.core.video import CaptionSource
from tubetldr.models.transcript import Transcript
from tubetldr.providers.youtube import YouTubeProvider
from tubetldr.services.batch import BatchOrchestrator
from tubetldr.utils.chunker import Chunker

def test_imports():
    assert issubclass(YouTubeProvider, CaptionSource)
    assert BatchOrchestrator is not None

def test_chunker_init():
    chunker = Chunker()
    assert chunker.max_tokens > 0

def test_empty_transcript_text():
    assert Transcript(video_id="AAAAAAAAAAA", language="en").text() == ""
