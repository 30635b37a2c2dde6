import tiktoken
from typing import Iterable, Iterator, List
from tubetldr.models.transcript import Segment, Transcript
from tubetldr.utils.logger import logger

MIN_BLOCK_SECONDS = 20.0

class Chunker:
    """Groups caption cues into prompt-sized pieces for map-reduce summaries."""

    def __init__(self, model_name: str = "gpt-4o", max_tokens: int = 24000, encoding=None):
        self.model_name = model_name
        self.max_tokens = max_tokens
        self._encoding = encoding

    @property
    def encoding(self):
        # tiktoken fetches its BPE ranks on first use
        if self._encoding is None:
            try:
                self._encoding = tiktoken.encoding_for_model(self.model_name)
            except KeyError:
                self._encoding = tiktoken.get_encoding("cl100k_base")
        return self._encoding

    def count_tokens(self, text: str) -> int:
        return len(self.encoding.encode(text))

    def pre_aggregate(self, segments: Iterable[Segment], min_duration: float = MIN_BLOCK_SECONDS) -> List[Segment]:
        """Fold cues into blocks of at least ``min_duration`` seconds.

        Auto-generated captions emit a cue every couple of seconds, so splitting
        on raw cues would cut sentences in half.
        """
        blocks: List[Segment] = []
        block = None
        for cue in segments:
            if block is None:
                block = cue
            elif block.end - block.start < min_duration:
                block = Segment(
                    start=block.start,
                    end=max(block.end, cue.end),
                    text=f"{block.text} {cue.text}".strip(),
                )
            else:
                blocks.append(block)
                block = cue
        if block is not None:
            blocks.append(block)
        return blocks

    def _pack(self, blocks: List[Segment]) -> Iterator[List[Segment]]:
        piece: List[Segment] = []
        budget = self.max_tokens
        for block in blocks:
            cost = self.count_tokens(block.text)
            if piece and cost > budget:
                yield piece
                piece, budget = [], self.max_tokens
            piece.append(block)
            budget -= cost
        if piece:
            yield piece

    def chunk(self, transcript: Transcript) -> List[List[Segment]]:
        """Split a transcript so no piece exceeds ``max_tokens`` unless a single block does."""
        pieces = list(self._pack(self.pre_aggregate(transcript.segments)))
        logger.debug(f"Split transcript {transcript.video_id} into {len(pieces)} chunks.")
        return pieces
