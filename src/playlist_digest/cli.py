import argparse
import logging
import sys

from . import config as config_lib
from . import pipeline
from .exceptions import CollaboratorError, DigestError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="playlist-digest", description="YouTube playlist summarizer with screenshots"
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Subcommands")

    # SUMMARIZE
    summarize_parser = subparsers.add_parser(
        "summarize", help="Summarize a playlist (resumable) or a single video"
    )
    summarize_parser.add_argument("--playlist", "-p", type=str, help="Playlist URL or id")
    summarize_parser.add_argument("--video", "-v", type=str, help="Single video URL")
    summarize_parser.add_argument(
        "--locale", "-l", choices=["ko", "en", "ja", "zh"], help="Output language"
    )
    summarize_parser.add_argument("--output", "-o", type=str, help="Output directory")
    summarize_parser.add_argument(
        "--concurrency", "-c", type=int, help="Videos processed in parallel"
    )
    summarize_parser.add_argument("--model", "-m", type=str, help="Gemini model name")
    summarize_parser.add_argument(
        "--no-screenshots", action="store_true", help="Skip screenshot capture"
    )
    summarize_parser.add_argument(
        "--retry", "-r", type=int, help="Retries for transient Gemini errors"
    )

    # STATUS
    status_parser = subparsers.add_parser("status", help="Show playlist processing status")
    status_parser.add_argument("--playlist", "-p", type=str, required=True, help="Playlist id")
    status_parser.add_argument(
        "--output", "-o", type=str, default="./output", help="Output directory"
    )

    # RETRY
    retry_parser = subparsers.add_parser(
        "retry", help="Reset failed videos so the next run retries them"
    )
    retry_parser.add_argument("--playlist", "-p", type=str, required=True, help="Playlist id")
    retry_parser.add_argument(
        "--output", "-o", type=str, default="./output", help="Output directory"
    )

    return parser


def _build_collaborators(conf):
    from .capture import YtDlpFrameCapturer
    from .gemini import GeminiSummarizer
    from .youtube import YouTubeCatalog

    catalog = YouTubeCatalog(
        api_key=config_lib.require_env(config_lib.YOUTUBE_API_KEY_ENV),
        api_base=conf.youtube.api_base,
        page_size=conf.youtube.page_size,
        timeout_s=conf.youtube.timeout_s,
    )
    summarizer = GeminiSummarizer(
        api_key=config_lib.require_env(config_lib.GEMINI_API_KEY_ENV),
        model=conf.gemini.model,
        max_retries=conf.gemini.max_retries,
        retry_delay_s=conf.gemini.retry_delay_s,
        max_output_tokens=conf.gemini.max_output_tokens,
    )
    capturer = YtDlpFrameCapturer(
        ytdlp_path=conf.capture.ytdlp_path,
        temp_dir=conf.capture.temp_dir,
        timestamp_offset_s=conf.capture.timestamp_offset_s,
        max_height=conf.capture.max_height,
        timeout_s=conf.capture.timeout_s,
    )
    return catalog, summarizer, capturer


def print_status(status: pipeline.CollectionStatus) -> None:
    pipeline.print_stats(status.playlist_title, status.stats)

    if status.failed:
        print("\nFailed videos:")
        for item in status.failed:
            print(f"  - {item.title}")
            print(f"    Error: {item.error}")


def run_command(args: argparse.Namespace, parser: argparse.ArgumentParser) -> int:
    if args.command == "summarize":
        if not args.playlist and not args.video:
            print("Either --playlist or --video is required.")
            return 1

        # Convert args to dict, filtering None
        cli_dict = {k: v for k, v in vars(args).items() if v is not None}
        conf = config_lib.resolve_config(cli_dict)
        catalog, summarizer, capturer = _build_collaborators(conf)

        if args.playlist:
            pipeline.run_playlist(conf, args.playlist, catalog, summarizer, capturer)
            return 0

        pipeline.summarize_single_video(conf, args.video, catalog, summarizer, capturer)
        return 0

    elif args.command == "status":
        print_status(pipeline.get_status(args.output, args.playlist))
        return 0

    elif args.command == "retry":
        pipeline.retry_failed(args.output, args.playlist)
        return 0

    parser.print_help()
    return 0


def main(argv=None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        code = run_command(args, parser)
    except (DigestError, CollaboratorError, ValueError) as e:
        print(f"❌ {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nInterrupted. Progress is saved; run the same command to resume.")
        sys.exit(130)

    sys.exit(code)


if __name__ == "__main__":
    main()
