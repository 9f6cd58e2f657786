#!/usr/bin/env python3
"""
Command-line runner for mflow workflow JSON files.

Usage:
    python -m mflow.nodes.runner workflow.json [--set node_id.field=value ...]

Examples:
    # Run a workflow against the engine configured in the environment
    python -m mflow.nodes.runner workflows/quick_convert.json

    # Pick the input file and engine on the command line
    python -m mflow.nodes.runner workflow.json --set input-1.filePath=clip.mp4 \\
        --engine-url http://127.0.0.1:9000

    # Write the graph with merged results back out
    python -m mflow.nodes.runner workflow.json -o result.json
"""

import argparse
import asyncio
import sys
from pathlib import Path

from mflow.core.config import Settings, coerce_value, load_config
from mflow.core.errors import WorkflowError
from mflow.core.logging import configure_logging
from mflow.execution.engine import CommandExecutionEngine, HttpExecutionEngine, create_engine
from mflow.execution.orchestrator import PipelineOrchestrator
from mflow.graph.store import GraphStore
from mflow.workflows.documents import Workflow, load_workflow, save_workflow


def apply_overrides(workflow: Workflow, overrides: list[str]) -> None:
    """Apply data overrides from the command line.

    Format: node_id.field=value. The type of an existing value is kept.
    """
    nodes = {n.id: n for n in workflow.nodes}
    for override in overrides:
        if '=' not in override:
            print(f"Warning: Invalid override format '{override}', expected 'node_id.field=value'")
            continue

        key, value = override.split('=', 1)
        if '.' not in key:
            print(f"Warning: Invalid override key '{key}', expected 'node_id.field'")
            continue

        node_id, field_name = key.rsplit('.', 1)
        if node_id not in nodes:
            print(f"Warning: Node '{node_id}' not found in workflow")
            continue

        node = nodes[node_id]
        try:
            value = coerce_value(value, node.data.get(field_name))
        except ValueError:
            print(f"Warning: '{value}' does not match the type of {node_id}.{field_name}, keeping it as text")

        node.data[field_name] = value
        print(f"  {node_id}.{field_name} = {value}")


def _engine_for(settings: Settings, engine_url: str | None, engine_command: str | None):
    if engine_command:
        return CommandExecutionEngine(engine_command, timeout=settings.engine_timeout)
    if engine_url:
        return HttpExecutionEngine(engine_url, timeout=settings.engine_timeout)
    return create_engine(settings)


def run_workflow(
    workflow_path: str,
    overrides: list[str] | None = None,
    settings: Settings | None = None,
    engine=None,
    output_path: str | None = None,
) -> bool:
    """Load, propagate, validate and execute a workflow.

    Returns True on success, False on failure.
    """
    settings = settings or Settings()
    workflow_path = Path(workflow_path).expanduser().resolve()

    print(f"Loading workflow: {workflow_path.name}")
    try:
        workflow = load_workflow(workflow_path)
    except FileNotFoundError:
        print(f"Error: Workflow file not found: {workflow_path}")
        return False
    except WorkflowError as e:
        print(f"Error: {e}")
        return False

    print(f"  {len(workflow.nodes)} nodes, {len(workflow.edges)} connections")

    if overrides:
        print("Applying overrides:")
        apply_overrides(workflow, overrides)

    store = GraphStore(workflow.nodes, workflow.edges)
    orchestrator = PipelineOrchestrator(engine or create_engine(settings),
                                        policy=settings.execution_policy)

    validation = orchestrator.validate(store.nodes)
    if not validation.is_valid:
        print(f"\n✗ {validation.message}")
        return False

    print("\nExecuting...")
    print("=" * 50)
    result = asyncio.run(orchestrator.run(store))
    print("=" * 50)

    if not result.success:
        print("\n✗ Execution failed")
        print(f"  {result.message}")
        return False

    print("\n✓ Execution completed successfully")
    for node_id, artifact in result.outputs.items():
        print(f"  {node_id} -> {artifact.path}")
    for node_id, audio in result.audio_outputs.items():
        print(f"  {node_id} -> {audio.path}")
    for node_id, score in result.vmaf_results.items():
        print(f"  {node_id} -> VMAF {score.mean:.1f}")

    if output_path:
        snapshot = store.snapshot()
        workflow.nodes, workflow.edges = snapshot.nodes, snapshot.edges
        save_workflow(workflow, output_path)
        print(f"Wrote {output_path}")
    return True


def list_nodes(workflow_path: str) -> int:
    try:
        workflow = load_workflow(workflow_path)
    except (FileNotFoundError, WorkflowError) as e:
        print(f"Error: {e}")
        return 1

    print(f"Workflow: {Path(workflow_path).name}\n")
    for node in workflow.nodes:
        print(f"{node.id} ({node.kind.value if node.kind else 'unknown'})")
        for key, value in node.data.items():
            print(f"  {key}: {value}")
        print()
    return 0


def build_parser(parser: argparse.ArgumentParser | None = None) -> argparse.ArgumentParser:
    parser = parser or argparse.ArgumentParser(
        description="Run mflow workflow JSON files from the command line",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s workflow.json
  %(prog)s workflow.json --set input-1.filePath=video.mov
  %(prog)s workflow.json --engine-command "media-engine --stdio" -o result.json
        """,
    )
    parser.add_argument('workflow', help='Path to workflow JSON file')
    parser.add_argument('-c', '--config', help='Settings JSON file')
    parser.add_argument(
        '--set', '-s',
        action='append',
        dest='overrides',
        metavar='NODE.FIELD=VALUE',
        help='Override node data (can be used multiple times)',
    )
    parser.add_argument('--engine-url', help='Execution engine base URL')
    parser.add_argument('--engine-command', help='Execution engine command (JSON over stdio)')
    parser.add_argument('-o', '--output', help='Write the resulting graph to this file')
    parser.add_argument('--list-nodes', '-l', action='store_true', help='List nodes and their data, then exit')
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    return run_from_args(args)


def run_from_args(args: argparse.Namespace) -> int:
    if args.list_nodes:
        return list_nodes(args.workflow)

    try:
        settings = load_config(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}")
        return 1
    configure_logging(json_output=settings.log_json, level=settings.log_level)

    engine = _engine_for(settings, args.engine_url, args.engine_command)
    success = run_workflow(args.workflow, args.overrides, settings, engine, args.output)
    return 0 if success else 1


if __name__ == '__main__':
    sys.exit(main())
