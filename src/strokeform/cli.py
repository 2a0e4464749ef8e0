"""
Command-line interface for strokeform.

Provides commands for recognizing strokes and matching compositions from
JSON stroke files.
"""

import argparse
import sys

from strokeform.config import load_config, save_default_config
from strokeform.tracer import configure_tracer, configure_tracer_from_config, get_tracer


def _add_trace_arguments(parser):
    parser.add_argument(
        "--trace",
        action="store_true",
        help="Enable runtime tracing",
    )
    parser.add_argument(
        "--trace-level",
        default="INFO",
        choices=["ERROR", "WARN", "INFO", "DEBUG"],
        help="Trace log level",
    )
    parser.add_argument(
        "--trace-file",
        default=None,
        help="Path to write trace logs",
    )
    parser.add_argument(
        "--trace-json",
        action="store_true",
        help="Enable JSON trace output",
    )


def main(argv=None):
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="strokeform: Recognize hand-drawn strokes and multi-stroke compositions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Recognize command
    recognize_parser = subparsers.add_parser("recognize", help="Rank candidate shapes per stroke")
    recognize_parser.add_argument(
        "--strokes", "-s",
        required=True,
        help="JSON file of strokes",
    )
    recognize_parser.add_argument(
        "--library", "-l",
        default=None,
        help="Library JSON file for user primitives",
    )
    recognize_parser.add_argument(
        "--config", "-c",
        default=None,
        help="Path to YAML configuration file",
    )
    _add_trace_arguments(recognize_parser)

    # Match command
    match_parser = subparsers.add_parser("match", help="Find library compositions among strokes")
    match_parser.add_argument(
        "--strokes", "-s",
        required=True,
        help="JSON file of strokes",
    )
    match_parser.add_argument(
        "--library", "-l",
        required=True,
        help="Library JSON file",
    )
    match_parser.add_argument(
        "--types", "-t",
        nargs="*",
        default=None,
        help="Accepted type per stroke, overriding the file ('' leaves a stroke pending)",
    )
    match_parser.add_argument(
        "--config", "-c",
        default=None,
        help="Path to YAML configuration file",
    )
    _add_trace_arguments(match_parser)

    # Init config command
    init_parser = subparsers.add_parser("init-config", help="Create default config file")
    init_parser.add_argument(
        "--out", "-o",
        default="strokeform_config.yaml",
        help="Output path for config file",
    )

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "recognize":
        return handle_recognize(args)
    elif args.command == "match":
        return handle_match(args)
    elif args.command == "init-config":
        return handle_init_config(args)

    return 0


def _configure_tracing(args, config):
    """Command-line trace flags win over the config file's tracing section."""
    if args.trace:
        configure_tracer(
            enabled=True,
            level=args.trace_level,
            file_path=args.trace_file,
            json_output=args.trace_json,
        )
    else:
        configure_tracer_from_config(config)


def handle_recognize(args):
    """Handle the recognize command."""
    tracer = get_tracer()

    try:
        from strokeform.io.persistence import load_library, load_strokes
        from strokeform.recognition.classifier import classify_with_library
        from strokeform.recognition.fingerprint import extract_fingerprint
        from strokeform.strokes.simplify import preprocess_stroke

        config = load_config(args.config)
        _configure_tracing(args, config)
        library = load_library(args.library, config)
        stroke_set = load_strokes(args.strokes)

        with tracer.span("cli_recognize", module="cli"):
            for idx, stroke in enumerate(stroke_set.strokes):
                analyzed = preprocess_stroke(stroke, config.refinement) or stroke
                fingerprint = extract_fingerprint(analyzed, config)
                results = classify_with_library(fingerprint, analyzed, library, config)

                if results:
                    ranked = ", ".join(f"{r.type} ({r.score:.0f})" for r in results)
                else:
                    ranked = "unrecognized"
                print(f"Stroke {idx}: {ranked}")

        return 0

    except Exception as e:
        tracer.event(f"Recognition failed: {str(e)}", level="ERROR")
        print(f"\nError: {str(e)}", file=sys.stderr)
        return 1


def handle_match(args):
    """Handle the match command."""
    tracer = get_tracer()

    try:
        from strokeform.canvas import Canvas
        from strokeform.io.persistence import load_library, load_strokes

        config = load_config(args.config)
        _configure_tracing(args, config)
        library = load_library(args.library, config)
        stroke_set = load_strokes(args.strokes)
        if args.types is not None:
            stroke_set = stroke_set.model_copy(update={"types": list(args.types)})

        with tracer.span("cli_match", module="cli"):
            canvas = Canvas(library, config)
            for idx, stroke in enumerate(stroke_set.strokes):
                handle = len(canvas.strokes)
                canvas.add_stroke(stroke)
                accepted = stroke_set.type_of(idx)
                if accepted and len(canvas.strokes) > handle:
                    canvas.accept(handle, accepted)
            matches = canvas.detect()

        if not matches:
            print("No compositions found.")
            return 0

        for match in matches:
            print(
                f"{match.label} ({match.library_key}): score {match.score:.2f}, "
                f"components {match.matched_component_indices}"
            )

        return 0

    except Exception as e:
        tracer.event(f"Matching failed: {str(e)}", level="ERROR")
        print(f"\nError: {str(e)}", file=sys.stderr)
        return 1


def handle_init_config(args):
    """Handle the init-config command."""
    save_default_config(args.out)
    print(f"Default configuration saved to: {args.out}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
