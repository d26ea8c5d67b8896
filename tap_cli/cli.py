"""
TAP CLI - Main Command Line Interface

This module provides the main CLI application for the Treebank
Adjudication Platform.

University of Athens - Nikolaos Lavidas
"""

from __future__ import annotations
import logging
import sys
import json
from pathlib import Path
from typing import Dict, Optional, List
import argparse

from tap_core.config_runtime import ConfigurationError, get_gold_options, get_runtime_config
from tap_core.logging_monitoring import setup_logging as configure_logging
from tap_core.models import Document, GoldOptions, MergeMode, Preference, SentCountMode
from tap_io.conllu_io import write_gold_string
from tap_io.corpus_loader import (
    SINGLE_DOCUMENT_KEY, load_directory, load_files_as_single_document
)
from tap_compare.comparator import SentenceSummary, build_sentence_index, filter_sentence_index
from tap_compare.tree_formatter import render_tree
from tap_gold.merge_engine import InvalidSelectionError, generate_gold_records

logger = logging.getLogger(__name__)


EXIT_OK = 0
EXIT_ERROR = 1
EXIT_USAGE = 2
EXIT_CONFIG = 78
EXIT_INTERRUPTED = 130


class UsageError(Exception):
    """Raised for invalid command line input"""


def setup_logging(verbose: bool = False, debug: bool = False):
    """Setup logging configuration"""
    config = get_runtime_config()

    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    else:
        level = config.get_setting("logging", "level", "WARNING")

    log_name = config.get_setting("logging", "file")
    configure_logging(
        level=level,
        json_format=bool(config.get_setting("logging", "json", False)),
        log_file=config.path_resolver.get_log_path(log_name) if log_name else None
    )


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser"""
    parser = argparse.ArgumentParser(
        prog="tap",
        description="Treebank Adjudication Platform CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  tap sentences anna.conllu ben.conllu --only-diff
  tap tree anna.conllu ben.conllu --sentence 3 --only-diff-edges
  tap gold anna.conllu ben.conllu --author-a anna --author-b ben --mode intersection -o gold.conllu
  tap sentences --dir annotations/ --doc chapter1
  tap server start --port 8000
        """
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output"
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug output"
    )

    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s 1.0.0"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    add_sentences_command(subparsers)
    add_tree_command(subparsers)
    add_gold_command(subparsers)
    add_server_commands(subparsers)

    return parser


def add_input_arguments(parser: argparse.ArgumentParser):
    """Add the annotator file selection arguments"""
    parser.add_argument("files", nargs="*", help="Annotator files of a single document")
    parser.add_argument("--dir", help="Directory with one sub-directory per document")
    parser.add_argument("--doc", help="Document key (first document when omitted)")


def add_sentences_command(subparsers):
    """Add sentence index command"""
    sentences_parser = subparsers.add_parser("sentences", help="List sentences with disagreement counts")
    add_input_arguments(sentences_parser)
    sentences_parser.add_argument("--only-diff", action="store_true", default=None,
                                  help="Only sentences with differences")
    sentences_parser.add_argument("--search", help="Case-insensitive text search")
    sentences_parser.add_argument("--format", choices=["table", "json"], default="table")


def add_tree_command(subparsers):
    """Add tree rendering command"""
    tree_parser = subparsers.add_parser("tree", help="Render the union tree of a sentence")
    add_input_arguments(tree_parser)
    tree_parser.add_argument("--sentence", type=int, required=True, help="Sentence number (1-based)")
    tree_parser.add_argument("--only-diff-edges", action="store_true", default=None,
                             help="Hide edges all annotators agree on")
    tree_parser.add_argument("--show-pos", action="store_true", default=None, help="Show UPOS/XPOS tags")
    tree_parser.add_argument("--output", help="Write the tree to a text file")


def add_gold_command(subparsers):
    """Add gold generation command"""
    gold_parser = subparsers.add_parser("gold", help="Generate a gold annotation from two annotators")
    add_input_arguments(gold_parser)
    gold_parser.add_argument("--author-a", required=True, help="Annotator A (id, file path or name)")
    gold_parser.add_argument("--author-b", required=True, help="Annotator B (id, file path or name)")
    gold_parser.add_argument("--mode", choices=[m.value for m in MergeMode])
    gold_parser.add_argument("--label-mode", choices=[m.value for m in Preference])
    gold_parser.add_argument("--token-mode", choices=[m.value for m in Preference])
    gold_parser.add_argument("--sent-count-mode", choices=[m.value for m in SentCountMode])
    gold_parser.add_argument("--no-comments", dest="include_comments", action="store_false", default=None,
                             help="Do not write comment lines")
    gold_parser.add_argument("--no-misc", dest="mark_misc", action="store_false", default=None,
                             help="Do not write Gold=* tags")
    gold_parser.add_argument("--no-fix-orphans", dest="fix_orphan_heads", action="store_false", default=None,
                             help="Keep heads that point outside the sentence")
    gold_parser.add_argument("-o", "--output", help="Output file (stdout when omitted)")


def add_server_commands(subparsers):
    """Add server commands"""
    server_parser = subparsers.add_parser("server", help="Server operations")
    server_subparsers = server_parser.add_subparsers(dest="server_command")

    start_parser = server_subparsers.add_parser("start", help="Start server")
    start_parser.add_argument("--host", help="Host to bind")
    start_parser.add_argument("--port", type=int, help="Port to bind")
    start_parser.add_argument("--reload", action="store_true", help="Enable auto-reload")


def load_input(args) -> Dict[str, Document]:
    """Load the documents selected on the command line"""
    config = get_runtime_config()
    encoding = config.get_setting("loader", "encoding", "utf-8")

    if args.dir:
        if args.files:
            raise UsageError("Give either annotator files or --dir, not both")
        pattern = config.get_setting("loader", "extensions")
        documents = load_directory(args.dir, pattern=pattern, encoding=encoding)
    elif args.files:
        documents = {SINGLE_DOCUMENT_KEY: load_files_as_single_document(args.files, encoding=encoding)}
    else:
        raise UsageError("No annotator files given")

    if not documents:
        raise UsageError("No annotation files found")
    return documents


def select_document(documents: Dict[str, Document], key: Optional[str]) -> Document:
    """Pick the requested document, the first one by key otherwise"""
    if key:
        if key not in documents:
            raise UsageError(f"Unknown document '{key}' (available: {', '.join(sorted(documents))})")
        return documents[key]
    return documents[sorted(documents)[0]]


def _setting_or(value, section: str, key: str, default=None):
    if value is not None:
        return value
    return get_runtime_config().get_setting(section, key, default)


def format_summary(item: SentenceSummary) -> str:
    """One line of the sentence table"""
    badges = []
    if item.any_text_diff:
        badges.append("✍️ Text")
    if item.label_diff_edges > 0:
        badges.append(f"⚠️ {item.label_diff_edges}")
    if item.missing_edges > 0:
        badges.append(f"➖ {item.missing_edges}")
    if not badges:
        badges.append("✅")
    return f"S{item.sent_id_human}\t{' '.join(badges)}\t{item.text}"


def handle_sentences_command(args) -> int:
    """Handle sentence index command"""
    document = select_document(load_input(args), args.doc)
    only_diff = bool(_setting_or(args.only_diff, "viewer", "only_diff_sentences", False))

    items = filter_sentence_index(build_sentence_index(document), only_diff=only_diff, query=args.search)

    if args.format == "json":
        print(json.dumps([item.to_dict() for item in items], ensure_ascii=False, indent=2))
        return EXIT_OK

    print(f"Document: {document.label}")
    print(f"Authors: {', '.join(a.name for a in document.authors)}")
    print("-" * 50)
    if not items:
        print("No sentences match the filters.")
    for item in items:
        print(format_summary(item))
    return EXIT_OK


def handle_tree_command(args) -> int:
    """Handle tree rendering command"""
    document = select_document(load_input(args), args.doc)

    if args.sentence < 1:
        raise UsageError("--sentence is 1-based")

    rendered = render_tree(
        document,
        args.sentence - 1,
        only_diff_edges=bool(_setting_or(args.only_diff_edges, "viewer", "only_diff_edges", False)),
        show_pos=bool(_setting_or(args.show_pos, "viewer", "show_pos", False))
    )

    if args.output:
        Path(args.output).write_text(rendered.txt_export, encoding="utf-8")
        print(f"Tree written to {args.output}")
    else:
        print(rendered.text)
        print()
        print(rendered.meta)
    return EXIT_OK


def build_gold_options(args) -> GoldOptions:
    """Merge command line values over the configured gold defaults"""
    return get_gold_options({
        "mode": args.mode,
        "label_mode": args.label_mode,
        "token_mode": args.token_mode,
        "sent_count_mode": args.sent_count_mode,
        "include_comments": args.include_comments,
        "mark_misc": args.mark_misc,
        "fix_orphan_heads": args.fix_orphan_heads,
    })


def handle_gold_command(args) -> int:
    """Handle gold generation command"""
    document = select_document(load_input(args), args.doc)
    options = build_gold_options(args)

    output = generate_gold_records(document, args.author_a, args.author_b, options)
    text = write_gold_string(output)

    if args.output:
        Path(args.output).write_text(text, encoding="utf-8")
        print(f"Gold annotation written to {args.output} "
              f"({len(output.sentences)} sentences, {output.conflict_count} conflict notes)")
    else:
        sys.stdout.write(text)
        if text and not text.endswith("\n"):
            sys.stdout.write("\n")
    return EXIT_OK


def handle_server_command(args) -> int:
    """Handle server commands"""
    if args.server_command == "start":
        import uvicorn
        from tap_api.app import create_app

        config = get_runtime_config()
        host = args.host or config.get_setting("server", "host", "127.0.0.1")
        port = args.port or config.get_setting("server", "port", 8000)

        print(f"Starting server on {host}:{port}...")
        if args.reload:
            # reload needs an import string
            uvicorn.run("tap_api.app:create_app", factory=True, host=host, port=port, reload=True)
        else:
            uvicorn.run(create_app(), host=host, port=port)
        return EXIT_OK

    print("Usage: tap server <command>")
    print("Commands: start")
    return EXIT_USAGE


def cli(args: Optional[List[str]] = None) -> int:
    """Main CLI entry point"""
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    setup_logging(parsed_args.verbose, parsed_args.debug)

    if not parsed_args.command:
        parser.print_help()
        return EXIT_OK

    handlers = {
        "sentences": handle_sentences_command,
        "tree": handle_tree_command,
        "gold": handle_gold_command,
        "server": handle_server_command,
    }

    try:
        return handlers[parsed_args.command](parsed_args)

    except (UsageError, InvalidSelectionError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_USAGE
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return EXIT_INTERRUPTED
    except Exception as e:
        logger.error(f"Error: {e}", exc_info=parsed_args.debug)
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR


def main():
    """Main entry point"""
    sys.exit(cli())


if __name__ == "__main__":
    main()
