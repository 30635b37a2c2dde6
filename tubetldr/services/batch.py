"""Runs the caption pipeline over a list of URLs.

Every item gets exactly one result at its input position. Item failures are
recorded as :class:`PipelineFailure` and never stop the rest of the batch;
the only batch-level errors are an empty input and an explicit cancel.
"""
import threading
import time
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from typing import Callable, List, Optional
from tubetldr.core.errors import (
    BatchCancelled,
    EmptyBatchError,
    ErrorKind,
    PipelineError,
    raise_if_cancelled,
)
from tubetldr.core.video import CaptionSource
from tubetldr.models.batch import (
    BatchConfig,
    BatchItemResponse,
    PipelineFailure,
    PipelineResult,
    PipelineSuccess,
)
from tubetldr.providers.youtube import YouTubeProvider
from tubetldr.services.summarizer import SummarizerService
from tubetldr.utils.logger import logger

GATE_POLL_INTERVAL = 0.1
WAIT_POLL_INTERVAL = 0.05

class BatchOrchestrator:
    def __init__(
        self,
        source_factory: Optional[Callable[[BatchConfig], CaptionSource]] = None,
        summarizer: Optional[SummarizerService] = None,
        max_concurrency: int = 4,
    ):
        self.source_factory = source_factory or YouTubeProvider.from_config
        self.summarizer = summarizer or SummarizerService()
        # Shared by every batch this orchestrator runs, so concurrent
        # requests cannot multiply the load on YouTube.
        self._gate = threading.BoundedSemaphore(max_concurrency)

    def _acquire_gate(self, cancel_event: threading.Event):
        while not self._gate.acquire(timeout=GATE_POLL_INTERVAL):
            raise_if_cancelled(cancel_event)

    def _run_item(self, index: int, raw_url: str, source: CaptionSource, config: BatchConfig, cancel_event: threading.Event) -> PipelineResult:
        video_id = None
        try:
            reference = source.resolve(raw_url)
            video_id = reference.video_id

            self._acquire_gate(cancel_event)
            try:
                transcript = source.get_transcript(reference, config.language, cancel_event)
            finally:
                self._gate.release()

            raise_if_cancelled(cancel_event)
            summary = self.summarizer.summarize(transcript, config.summary)
        except PipelineError as e:
            logger.warning(f"[{index}] {raw_url}: {e.kind.value}: {e.reason}")
            return PipelineFailure(url=raw_url, video_id=video_id, kind=e.kind, reason=e.reason)
        except Exception as e:
            logger.exception(f"[{index}] {raw_url}: unexpected error")
            return PipelineFailure(
                url=raw_url,
                video_id=video_id,
                kind=ErrorKind.UNEXPECTED,
                reason=f"Unexpected error while processing this video ({e.__class__.__name__})"
            )

        return PipelineSuccess(
            url=raw_url,
            video_id=video_id,
            title=transcript.title or video_id,
            transcript=transcript,
            summary=summary
        )

    def run(self, urls: List[str], config: BatchConfig, cancel_event: Optional[threading.Event] = None) -> List[PipelineResult]:
        if not urls:
            raise EmptyBatchError("No URLs provided")

        cancel_event = cancel_event or threading.Event()
        source = self.source_factory(config)
        results: List[Optional[PipelineResult]] = [None] * len(urls)
        workers = min(config.max_concurrency, len(urls))
        logger.info(f"Starting batch of {len(urls)} videos (language={config.language}, workers={workers})")

        deadline = None
        if config.batch_timeout is not None:
            deadline = time.monotonic() + config.batch_timeout

        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="tubetldr-item")
        deadline_exceeded = False
        try:
            futures = {
                executor.submit(self._run_item, i, url, source, config, cancel_event): i
                for i, url in enumerate(urls)
            }
            pending = set(futures)
            while pending and not cancel_event.is_set():
                timeout = WAIT_POLL_INTERVAL
                if deadline is not None:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        deadline_exceeded = True
                        break
                    timeout = min(timeout, remaining)
                _, pending = wait(pending, timeout=timeout, return_when=FIRST_COMPLETED)

            if deadline_exceeded or cancel_event.is_set():
                cancel_event.set()
                for future in pending:
                    future.cancel()
                source.abort()
                if not deadline_exceeded:
                    raise BatchCancelled("Batch was cancelled")

            # Only this thread writes results; late workers are ignored.
            for future, i in futures.items():
                if future not in pending:
                    results[i] = future.result()
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        if deadline_exceeded:
            logger.warning(f"Batch deadline of {config.batch_timeout:g}s exceeded")
            for i, result in enumerate(results):
                if result is None:
                    results[i] = PipelineFailure(
                        url=urls[i],
                        kind=ErrorKind.NETWORK_FAILURE,
                        reason=f"Batch deadline of {config.batch_timeout:g}s exceeded before this video finished"
                    )

        failed = sum(1 for r in results if isinstance(r, PipelineFailure))
        if failed == len(results):
            logger.warning(f"All {failed} videos in the batch failed")
        else:
            logger.info(f"Batch finished: {len(results) - failed} succeeded, {failed} failed")
        return results

def to_response(results: List[PipelineResult]) -> List[BatchItemResponse]:
    return [BatchItemResponse.from_result(r) for r in results]
