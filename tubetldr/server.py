"""HTTP API around the batch pipeline."""

import asyncio
import threading
from typing import List
from fastapi import FastAPI, HTTPException, status
from fastapi.responses import Response
from tubetldr.config import settings
from tubetldr.core.errors import BatchCancelled, EmptyBatchError
from tubetldr.models.batch import BatchConfig, BatchItemResponse, BatchRequest
from tubetldr.services.archive import ArchiveEntry, build_archive
from tubetldr.services.batch import BatchOrchestrator, to_response
from tubetldr.utils.logger import logger

def create_app(orchestrator: BatchOrchestrator = None) -> FastAPI:
    app = FastAPI(title="tubetldr")
    app.state.orchestrator = orchestrator or BatchOrchestrator(max_concurrency=settings.MAX_CONCURRENCY)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.post(
        "/api/summarize",
        response_model=List[BatchItemResponse],
        response_model_by_alias=True,
        response_model_exclude_none=True,
    )
    async def summarize(request: BatchRequest):
        """Summarize every URL; one entry per URL, in request order.

        Per-video failures are reported in the entry's ``error`` field and the
        response is still 200, even when every video failed.
        """
        config = BatchConfig.from_settings(settings, **request.overrides())
        cancel_event = threading.Event()
        try:
            results = await asyncio.to_thread(app.state.orchestrator.run, request.urls, config, cancel_event)
        except EmptyBatchError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
        except asyncio.CancelledError:
            logger.info(f"Client went away; cancelling batch of {len(request.urls)} videos")
            cancel_event.set()
            raise
        except BatchCancelled as e:
            raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
        return to_response(results)

    @app.post("/api/archive")
    async def archive(entries: List[ArchiveEntry]):
        if not entries:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No entries provided")
        data = await asyncio.to_thread(build_archive, entries)
        return Response(
            content=data,
            media_type="application/zip",
            headers={"Content-Disposition": 'attachment; filename="summaries.zip"'}
        )

    return app

app = create_app()

def main():
    import uvicorn

    logger.info(f"Serving on http://{settings.HOST}:{settings.PORT}")
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_config=None)

if __name__ == "__main__":
    main()
