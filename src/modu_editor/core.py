"""Core pipeline for modu-editor."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from .document import coerce_content, html_to_document, node_to_json
from .export import ExportConfig, load_questions_file, render_questions_markdown
from .media import build_image_node, inspect_image
from .projector import document_to_markdown, document_to_text

LOG = logging.getLogger("modu_editor")

EXIT_INVALID_ARGS = 6
EXIT_OUTPUT = 7
EXIT_INPUT = 8


def _resolve_log_level(verbose: bool, debug: bool) -> int:
    return logging.DEBUG if debug else (logging.INFO if verbose else logging.WARNING)


def _configure_modu_logger(level: int) -> None:
    LOG.setLevel(level)
    LOG.propagate = False
    if not LOG.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
        handler.setLevel(level)
        LOG.addHandler(handler)
    else:
        for handler in LOG.handlers:
            handler.setLevel(level)
            if handler.formatter is None:
                handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))


def setup_logging(verbose: bool, debug: bool) -> None:
    level = _resolve_log_level(verbose, debug)
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")
    _configure_modu_logger(level)


def safe_write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8", newline="\n")


def default_export_filename(now: datetime) -> str:
    return f"질문답변모음_{now.strftime('%Y-%m-%d')}.md"


def load_document_file(path: Path) -> Any:
    """Read a stored document: editor JSON, or raw text when the file is not JSON."""
    try:
        raw = path.read_text(encoding="utf-8")
    except Exception as exc:
        raise RuntimeError(f"Unable to read document {path}: {exc}") from exc
    if path.suffix.lower() in {".html", ".htm"}:
        return html_to_document(raw)
    stripped = raw.strip()
    if stripped.startswith("{") or stripped.startswith("["):
        try:
            return json.loads(stripped)
        except ValueError as exc:
            raise ValueError(f"Invalid document JSON in {path}: {exc}") from exc
    return raw


def run_text_projection(document_path: Path, *, markdown: bool = False) -> str:
    content = load_document_file(document_path)
    if markdown:
        LOG.info("Rendering %s as Markdown via markdownify", document_path)
        return document_to_markdown(coerce_content(content))
    LOG.info("Projecting %s to plain text", document_path)
    return document_to_text(content)


def run_export_pipeline(
    *,
    questions_path: Path,
    out_path: Path,
    config: ExportConfig,
    now: Optional[datetime] = None,
) -> str:
    questions = load_questions_file(questions_path)
    LOG.info("Loaded %d question(s) from %s", len(questions), questions_path)
    md_text = render_questions_markdown(questions, config, now=now)
    try:
        safe_write_text(out_path, md_text)
    except OSError as exc:
        raise RuntimeError(f"Unable to write export {out_path}: {exc}") from exc
    LOG.info("Export written: %s", out_path)
    return md_text


def run_image_inspection(image_path: Path, src: Optional[str] = None) -> Dict[str, Any]:
    info = inspect_image(image_path)
    LOG.info("Image %s: %s %dx%d (%d bytes)", image_path, info.format, info.width, info.height, info.size)
    node = build_image_node(src or image_path.name, info)
    return node_to_json(node)
