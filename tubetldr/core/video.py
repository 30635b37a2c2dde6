from abc import ABC, abstractmethod
from threading import Event
from typing import Optional
from tubetldr.models.transcript import Transcript
from tubetldr.models.video import VideoReference

class CaptionSource(ABC):
    @abstractmethod
    def resolve(self, raw_input: str) -> VideoReference:
        """Resolve a user-supplied string to a video reference."""
        pass

    @abstractmethod
    def get_transcript(self, reference: VideoReference, language: str, cancel_event: Optional[Event] = None) -> Transcript:
        """Fetch the transcript of ``reference`` in exactly ``language``."""
        pass

    def abort(self):
        """Drop any in-flight network work. Called when a batch is cancelled."""
        pass
