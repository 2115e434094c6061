# src/main.py — v1
"""CLI entry point — generate, graph, plan commands.

Usage:
    specweaver generate "<request>" [-o artifacts.json]
    specweaver graph <artifacts.json> [--export graph.json]
    specweaver plan <artifacts.json> --artifact pm_spec --path title --value X [--intent "..."]

Artifact files are JSON objects mapping artifact type to either the
artifact content or a serialized Artifact (with a 'content' key).
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import Any

from specweaver.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    _setup_logging(args.verbose)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        return asyncio.run(args.func(args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="specweaver",
        description=f"specweaver v{__version__} — multi-role specification generator",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- generate ---
    p_generate = subparsers.add_parser(
        "generate", help="Run the generation pipeline for a request",
    )
    p_generate.add_argument("request", help="Free-text description of the system")
    p_generate.add_argument(
        "-o", "--output", type=Path, default=Path("./artifacts.json"),
        help="Where to write the artifacts (default: ./artifacts.json)",
    )
    p_generate.add_argument(
        "--document", action="append", type=Path, default=[],
        help="Supplemental document to include (repeatable)",
    )
    p_generate.set_defaults(func=_cmd_generate)

    # --- graph ---
    p_graph = subparsers.add_parser(
        "graph", help="Build the schema knowledge graph for an artifact file",
    )
    p_graph.add_argument("artifacts", type=Path, help="Artifact JSON file")
    p_graph.add_argument(
        "--export", type=Path, default=None,
        help="Write the exported graph to this file",
    )
    p_graph.set_defaults(func=_cmd_graph)

    # --- plan ---
    p_plan = subparsers.add_parser(
        "plan", help="Plan the refinement of one artifact field",
    )
    p_plan.add_argument("artifacts", type=Path, help="Artifact JSON file")
    p_plan.add_argument("--artifact", required=True, help="Target artifact type")
    p_plan.add_argument("--path", required=True, help="Target schema path, e.g. apis[0].path")
    p_plan.add_argument(
        "--value", required=True,
        help="New value (parsed as JSON when possible, else used as a string)",
    )
    p_plan.add_argument("--intent", default="", help="Change request in plain words")
    p_plan.set_defaults(func=_cmd_plan)

    return parser


async def _cmd_generate(args: argparse.Namespace) -> int:
    from specweaver.api.facade import generate_specification
    from specweaver.core.models import PipelineEvent, RunOptions, SupplementalDocument

    documents = []
    for path in args.document:
        if not path.is_file():
            logger.error("Document not found: %s", path)
            return 1
        documents.append(
            SupplementalDocument(name=path.name, content=path.read_text(encoding="utf-8"))
        )

    def on_event(event: PipelineEvent) -> None:
        if event.type in ("step_complete", "step_failed"):
            print(f"  {event.type:14s} {event.step_id}")

    result = await generate_specification(
        args.request, options=RunOptions(documents=documents), on_event=on_event,
    )
    payload = {k: a.model_dump(mode="json") for k, a in result.artifacts.items()}
    args.output.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    print(f"\nRun {'succeeded' if result.success else 'failed'}:")
    print(f"  Artifacts:  {len(result.artifacts)} -> {args.output}")
    print(f"  Duration:   {result.duration_ms / 1000:.1f}s")
    if result.error:
        print(f"  Error:      {result.error}")
    return 0 if result.success else 2


async def _cmd_graph(args: argparse.Namespace) -> int:
    from specweaver.api.facade import build_knowledge_graph

    artifacts = _load_artifacts(args.artifacts)
    graph = await build_knowledge_graph(artifacts)
    stats = graph.get_stats()
    print(f"Nodes: {stats['nodes']}  Edges: {stats['edges']}")
    for warning in graph.last_build.warnings if graph.last_build else []:
        print(f"  warning: {warning}")
    for edge in graph.get_edges():
        print(f"  {edge.from_id} -> {edge.to_id} ({edge.detection_method}, {edge.confidence:.2f})")
    if args.export:
        args.export.write_text(json.dumps(graph.export(), indent=2), encoding="utf-8")
    return 0


async def _cmd_plan(args: argparse.Namespace) -> int:
    from specweaver.api.facade import plan_refinement

    artifacts = _load_artifacts(args.artifacts)
    plan = await plan_refinement(
        artifacts,
        args.intent or f"Change {args.artifact}.{args.path}",
        args.artifact,
        args.path,
        _parse_value(args.value),
    )
    print(f"Impact score: {plan.impact_score:.2f}")
    for update in plan.updates:
        print(f"  [{update.priority:8s}] {update.artifact_type}: {', '.join(update.target_paths)}")
        print(f"             {update.instruction}")
    return 0


def _load_artifacts(path: Path) -> dict[str, Any]:
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a JSON object")
    return {
        key: value if isinstance(value, dict) and "content" in value else {"content": value}
        for key, value in data.items()
    }


def _parse_value(raw: str) -> Any:
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def _setup_logging(verbose: bool) -> None:
    from specweaver.logging.logger import setup_logging

    setup_logging(level="DEBUG" if verbose else "INFO", log_format="text")


if __name__ == "__main__":
    raise SystemExit(main())
