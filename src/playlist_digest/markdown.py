"""Markdown document writer for completed summaries."""

from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

import yaml

from .jobs.backends import DocumentWriter
from .jobs.models import ItemRecord, VideoInfo, VideoSummary
from .jobs.naming import timestamp_to_filename, parse_timestamp
from .jobs.stages import SCREENSHOT_SUBDIR

README_NAME = "README.md"

LABELS: Dict[str, Dict[str, str]] = {
    "ko": {"watch": "YouTube에서 보기", "overview": "개요", "sections": "상세 내용", "key_points": "핵심 포인트"},
    "en": {"watch": "Watch on YouTube", "overview": "Overview", "sections": "Details", "key_points": "Key Points"},
    "ja": {"watch": "YouTubeで見る", "overview": "概要", "sections": "詳細", "key_points": "要点"},
    "zh": {"watch": "在 YouTube 上观看", "overview": "概述", "sections": "详细内容", "key_points": "要点"},
}


class MarkdownWriter(DocumentWriter):
    """Writes ``README.md`` with YAML frontmatter into the item directory.

    Screenshot links point at ``screenshots/<timestamp>.png``; they resolve
    once the capture stage has produced the files.
    """

    def __init__(self, locale: str = "ko", with_screenshots: bool = True):
        self.locale = locale
        self.with_screenshots = with_screenshots

    def write(
        self, item_dir: Path, video_url: str, item: ItemRecord, summary: VideoSummary
    ) -> Path:
        return self.write_document(item_dir, video_url, item.title, summary)

    def write_document(
        self,
        item_dir: Path,
        video_url: str,
        title: str,
        summary: VideoSummary,
        video: Optional[VideoInfo] = None,
    ) -> Path:
        item_dir = Path(item_dir)
        item_dir.mkdir(parents=True, exist_ok=True)
        path = item_dir / README_NAME
        path.write_text(self.render(video_url, title, summary, video), encoding="utf-8")
        return path

    def render(
        self,
        video_url: str,
        title: str,
        summary: VideoSummary,
        video: Optional[VideoInfo] = None,
    ) -> str:
        labels = LABELS.get(self.locale, LABELS["en"])
        frontmatter = {
            "title": title,
            "url": video_url,
            "locale": self.locale,
            "summarized_at": datetime.now(timezone.utc).isoformat(),
        }
        if video is not None:
            frontmatter["channel"] = video.channel_title
            frontmatter["published"] = video.published_at[:10]

        lines = [
            "---",
            yaml.safe_dump(frontmatter, allow_unicode=True, sort_keys=False).strip(),
            "---",
            "",
            f"# {title}",
            "",
            f"[{labels['watch']}]({video_url})",
            "",
            f"## {labels['overview']}",
            "",
            summary.overview,
            "",
            f"## {labels['sections']}",
            "",
        ]

        for section in summary.sections:
            seconds = parse_timestamp(section.timestamp)
            lines.append(f"### [{section.timestamp}]({video_url}&t={seconds}s) {section.title}")
            lines.append("")
            if self.with_screenshots:
                image = f"{SCREENSHOT_SUBDIR}/{timestamp_to_filename(section.timestamp)}"
                lines.append(f"![{section.title}]({image})")
                lines.append("")
            lines.append(section.content)
            lines.append("")

        if summary.key_points:
            lines.append(f"## {labels['key_points']}")
            lines.append("")
            lines.extend(f"- {point}" for point in summary.key_points)
            lines.append("")

        return "\n".join(lines)
