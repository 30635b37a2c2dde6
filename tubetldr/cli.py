import argparse
import json
import os
import sys
from typing import List
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table
from tubetldr.config import settings
from tubetldr.core.errors import EmptyBatchError
from tubetldr.models.batch import BatchConfig, PipelineResult, PipelineSuccess
from tubetldr.models.transcript import format_time
from tubetldr.services.archive import ArchiveEntry, build_archive
from tubetldr.services.batch import BatchOrchestrator, to_response
from tubetldr.utils.logger import logger

console = Console()

def to_markdown(result: PipelineSuccess) -> str:
    lines = [f"# {result.title}", "", f"> https://www.youtube.com/watch?v={result.video_id}", ""]
    lines.append(result.summary or "_No summary._")
    return "\n".join(lines)

def render_results(results: List[PipelineResult]):
    table = Table(title="Results", show_header=True, header_style="bold magenta")
    table.add_column("#", style="dim", width=3)
    table.add_column("Video", style="white")
    table.add_column("Status")
    table.add_column("Details", style="cyan")

    for i, result in enumerate(results):
        if isinstance(result, PipelineSuccess):
            segments = result.transcript.segments
            length = format_time(segments[-1].end) if segments else "00:00"
            table.add_row(str(i + 1), result.title, "[green]✔ ok[/green]", f"{len(segments)} segments, {length}")
        else:
            table.add_row(str(i + 1), result.url, f"[red]✘ {result.kind.value}[/red]", result.reason)
    console.print(table)

    for result in results:
        if isinstance(result, PipelineSuccess) and result.summary:
            console.print(Panel(Markdown(result.summary), title=result.title, border_style="green"))

def save_results(results: List[PipelineResult], output_root: str) -> List[str]:
    saved = []
    for result in results:
        if not isinstance(result, PipelineSuccess):
            continue
        output_dir = os.path.join(output_root, result.video_id)
        os.makedirs(output_dir, exist_ok=True)

        with open(os.path.join(output_dir, "summary.md"), "w", encoding="utf-8") as f:
            f.write(to_markdown(result))

        with open(os.path.join(output_dir, "transcript.json"), "w", encoding="utf-8") as f:
            f.write(result.transcript.model_dump_json(indent=2))
        saved.append(output_dir)
    return saved

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Summarize YouTube videos from their captions")
    parser.add_argument("urls", nargs="*", help="Video URLs or ids")
    parser.add_argument("--lang", help=f"Caption language code (default: {settings.TRANSCRIPT_LANG})")
    parser.add_argument("--model", help="LLM model to use")
    parser.add_argument("--api-key", help="LLM API key (default: LLM_API_KEY)")
    parser.add_argument("--prompt", help="System prompt for the summary")
    parser.add_argument("--transcript-only", action="store_true", help="Skip the LLM and return the transcript text")
    parser.add_argument("--dry-run", action="store_true", help="Return a sample summary without calling the LLM")
    parser.add_argument("--no-cache", action="store_true", help="Disable summary cache and recompute")
    parser.add_argument("--concurrency", type=int, help="Maximum videos processed at once")
    parser.add_argument("--timeout", type=float, help="Timeout in seconds for each YouTube request")
    parser.add_argument("--batch-timeout", type=float, help="Overall deadline for the whole batch, in seconds")
    parser.add_argument("--json", action="store_true", help="Print the batch response as JSON instead of tables")
    parser.add_argument("--zip", dest="zip_path", help="Also write all successful results to this zip file")
    parser.add_argument("--no-save", action="store_true", help=f"Do not save output to {settings.OUTPUT_DIR}/")
    return parser

def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    config = BatchConfig.from_settings(
        settings,
        language=args.lang,
        model=args.model,
        api_key=args.api_key,
        system_prompt=args.prompt,
        transcript_only=args.transcript_only,
        dry_run=args.dry_run,
        use_cache=not args.no_cache,
        max_concurrency=args.concurrency,
        request_timeout=args.timeout,
        batch_timeout=args.batch_timeout,
    )
    orchestrator = BatchOrchestrator(max_concurrency=config.max_concurrency)

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
            console=console,
            disable=args.json
        ) as progress:
            progress.add_task(description=f"Summarizing {len(args.urls)} video(s)...", total=None)
            results = orchestrator.run(args.urls, config)
    except EmptyBatchError as e:
        console.print(f"[red]{e}.[/red] Provide at least one video URL.")
        return 2

    if args.json:
        payload = [item.model_dump(by_alias=True, exclude_none=True, mode="json") for item in to_response(results)]
        print(json.dumps(payload, ensure_ascii=False, indent=2))
    else:
        render_results(results)

    if not args.no_save:
        saved = save_results(results, settings.OUTPUT_DIR)
        if saved and not args.json:
            console.print(f"\n[blue]Saved output to {settings.OUTPUT_DIR}/ ({len(saved)} videos)[/blue]")

    if args.zip_path:
        entries = [
            ArchiveEntry(name=r.title, summary=r.summary, transcript=r.transcript.text())
            for r in results if isinstance(r, PipelineSuccess)
        ]
        with open(args.zip_path, "wb") as f:
            f.write(build_archive(entries))
        logger.info(f"Wrote {len(entries)} results to {args.zip_path}")

    if all(not isinstance(r, PipelineSuccess) for r in results):
        return 1
    return 0

if __name__ == "__main__":
    sys.exit(main())
