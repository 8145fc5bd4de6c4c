"""Command-line interface for modu-editor."""

from __future__ import annotations

import argparse
import json
import sys
from datetime import datetime
from pathlib import Path

from .version import __version__


def _get_usage() -> str:
    return (
        f"modu-editor {__version__}\n"
        "Usage:\n"
        "  modu-editor [--help] [--version|--ver]\n"
        "  modu-editor --to-text DOCUMENT [--to-markdown]\n"
        "  modu-editor --prompt QUESTION_JSON\n"
        "  modu-editor --export-questions QUESTIONS_JSON [--output PATH] [options]\n"
        "  modu-editor --inspect-image IMAGE [--src URL]\n"
        "  modu-editor --write-config PATH\n\n"
        "Options:\n"
        "  --to-markdown                Render rich Markdown (images, links) instead of plain text\n"
        "  --output PATH                Export destination (default: 질문답변모음_<date>.md)\n"
        "  --config PATH                Export config JSON\n"
        "  --event-title TITLE          Fallback event title for prompts\n"
        "  --with-llm-prompt            Include the LLM prompt block for each question\n"
        "  --verbose                    Verbose progress logs\n"
        "  --debug                      Debug logs"
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(add_help=False)
    parser.add_argument("--help", action="store_true")
    parser.add_argument("--version", action="store_true")
    parser.add_argument("--ver", action="store_true")
    parser.add_argument("--to-text", help="Document file (editor JSON, HTML or plain text) to project")
    parser.add_argument("--to-markdown", action="store_true", help="Render rich Markdown instead of plain text")
    parser.add_argument("--prompt", help="Question record JSON to turn into clipboard Markdown")
    parser.add_argument("--export-questions", help="Questions dump (JSON list) to export as Markdown")
    parser.add_argument("--output", help="Output path for --export-questions")
    parser.add_argument("--config", help="Export config JSON")
    parser.add_argument("--write-config", help="Write the default export config JSON to the given path and exit")
    parser.add_argument("--event-title", help="Fallback event title (fallback: MODU_EDITOR_EVENT_TITLE env var)")
    parser.add_argument("--with-llm-prompt", action="store_true", help="Include the LLM prompt block per question")
    parser.add_argument("--inspect-image", help="Validate an image upload and print its image node")
    parser.add_argument("--src", help="src attribute for --inspect-image (default: file name)")
    parser.add_argument("--verbose", action="store_true", help="Verbose progress logs")
    parser.add_argument("--debug", action="store_true", help="Debug logs")
    return parser


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    parser = _build_parser()
    args, unknown = parser.parse_known_args(argv)
    if unknown:
        print(_get_usage())
        return 2

    if not argv or args.help:
        print(_get_usage())
        return 0

    if args.version or args.ver:
        print(__version__)
        return 0

    actions = [a for a in (args.to_text, args.prompt, args.export_questions, args.inspect_image, args.write_config) if a]
    if len(actions) > 1:
        print(
            "Options --to-text, --prompt, --export-questions, --inspect-image and --write-config are mutually exclusive",
            file=sys.stderr,
        )
        return 6

    try:
        from modu_editor import core
    except Exception as exc:
        print(f"Unable to import modu_editor core: {exc}", file=sys.stderr)
        return 6

    core.setup_logging(args.verbose, args.debug)

    if args.write_config:
        from modu_editor.export import write_default_export_config

        target = Path(args.write_config).expanduser().resolve()
        try:
            write_default_export_config(target)
        except OSError as exc:
            print(f"Unable to write export config {target}: {exc}", file=sys.stderr)
            return core.EXIT_OUTPUT
        if args.verbose:
            print(f"Default export config written to {target}")
        return 0

    if args.to_text:
        document_path = Path(args.to_text).expanduser().resolve()
        if not document_path.is_file():
            print(f"Document not found: {document_path}", file=sys.stderr)
            return core.EXIT_INVALID_ARGS
        try:
            text = core.run_text_projection(document_path, markdown=bool(args.to_markdown))
        except (RuntimeError, ValueError) as exc:
            print(str(exc), file=sys.stderr)
            return core.EXIT_INPUT
        sys.stdout.write(text)
        return 0

    if args.inspect_image:
        image_path = Path(args.inspect_image).expanduser().resolve()
        try:
            node = core.run_image_inspection(image_path, src=args.src)
        except (RuntimeError, ValueError) as exc:
            print(str(exc), file=sys.stderr)
            return core.EXIT_INPUT
        print(json.dumps(node, ensure_ascii=False, indent=2))
        return 0

    from modu_editor import export

    config = export.ExportConfig(default_event_title=export.default_event_title())
    if args.config:
        config_path = Path(args.config).expanduser().resolve()
        if not config_path.is_file():
            print(f"Export config not found: {config_path}", file=sys.stderr)
            return core.EXIT_INVALID_ARGS
        try:
            config = export.load_export_config(config_path)
        except ValueError as exc:
            print(str(exc), file=sys.stderr)
            return core.EXIT_INVALID_ARGS
    if args.event_title:
        config.default_event_title = args.event_title
    if args.with_llm_prompt:
        config.include_llm_prompt = True

    if args.prompt:
        question_path = Path(args.prompt).expanduser().resolve()
        try:
            data = json.loads(question_path.read_text(encoding="utf-8"))
            question = export.QuestionRecord.from_dict(data)
        except (OSError, ValueError) as exc:
            print(f"Unable to read question {question_path}: {exc}", file=sys.stderr)
            return core.EXIT_INPUT
        print(export.generate_prompt_markdown(question, config.default_event_title))
        return 0

    if not args.export_questions:
        print(_get_usage())
        print(
            "One of --to-text, --prompt, --export-questions, --inspect-image or --write-config is required",
            file=sys.stderr,
        )
        return 6

    questions_path = Path(args.export_questions).expanduser().resolve()
    if not questions_path.is_file():
        print(f"Questions file not found: {questions_path}", file=sys.stderr)
        return core.EXIT_INVALID_ARGS

    now = datetime.now()
    out_path = Path(args.output).expanduser().resolve() if args.output else Path.cwd() / core.default_export_filename(now)
    if out_path.exists() and out_path.is_dir():
        print(f"Output path is a directory: {out_path}", file=sys.stderr)
        return core.EXIT_OUTPUT

    try:
        core.run_export_pipeline(questions_path=questions_path, out_path=out_path, config=config, now=now)
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        return core.EXIT_INPUT
    except RuntimeError as exc:
        print(f"Export failed: {exc}", file=sys.stderr)
        return core.EXIT_OUTPUT

    if args.verbose:
        print(f"Exported questions to {out_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
