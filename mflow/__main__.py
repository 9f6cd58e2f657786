"""
mflow Command Line Interface

Usage:
    mflow <command> [options]

Commands:
    serve       Start the HTTP API server
    run         Execute a workflow JSON file
    validate    Check a workflow file and show propagated values
    presets     List preset workflows or export one to a file
    version     Show version information

Examples:
    mflow serve --port 8000
    mflow run workflow.json --set input-1.filePath=clip.mp4
    mflow validate workflow.json
    mflow presets --export quick-convert -o quick_convert.json
"""

import sys
import argparse

from mflow import __version__


def cmd_validate(args) -> int:
    from mflow.core.errors import WorkflowError
    from mflow.execution.orchestrator import validate_pipeline
    from mflow.graph.store import GraphStore
    from mflow.graph.validator import is_valid_connection
    from mflow.workflows.documents import load_workflow

    try:
        workflow = load_workflow(args.workflow)
    except (FileNotFoundError, WorkflowError) as e:
        print(f"Error: {e}")
        return 1

    ok = True
    for edge in workflow.edges:
        if not is_valid_connection(edge, workflow.nodes):
            print(f"  ✗ connection {edge.id} is not allowed")
            ok = False

    store = GraphStore(workflow.nodes, workflow.edges)
    for node in store.nodes:
        kind = node.kind.value if node.kind else "unknown"
        resolved = {k: node.data[k] for k in ('videoPath', 'audioPath', 'referenceVideoPath',
                                             'testVideoPath', 'trimParams') if node.data.get(k)}
        print(f"{node.id} ({kind}) {resolved if resolved else ''}".rstrip())

    validation = validate_pipeline(store.nodes)
    if validation.is_valid:
        print("\n✓ Pipeline is ready to execute")
    else:
        print(f"\n✗ {validation.message}")
    return 0 if ok and validation.is_valid else 1


def cmd_presets(args) -> int:
    from mflow.workflows.documents import save_workflow
    from mflow.workflows.presets import get_preset, list_presets

    if not args.export:
        for preset in list_presets():
            print(f"{preset['id']:<20} {preset['name']:<20} {preset['description']}")
        return 0

    try:
        workflow = get_preset(args.export)
    except KeyError:
        print(f"Error: Unknown preset '{args.export}'")
        return 1
    output = args.output or f"{args.export.replace('-', '_')}.json"
    save_workflow(workflow, output)
    print(f"Wrote {output}")
    return 0


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog='mflow',
        description='Media Flow Graph',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        '-V', '--version',
        action='version',
        version=f'mflow {__version__}',
    )

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    serve_parser = subparsers.add_parser('serve', help='Start the HTTP API server')
    serve_parser.add_argument('-c', '--config', help='Settings JSON file')
    serve_parser.add_argument('-p', '--port', type=int, help='Port (default: 8000)')
    serve_parser.add_argument('--host', help='Host (default: 127.0.0.1)')
    serve_parser.add_argument('--workflow', help='Workflow JSON file to load at startup')

    from mflow.nodes.runner import build_parser
    run_parser = subparsers.add_parser('run', help='Execute a workflow JSON file')
    build_parser(run_parser)

    validate_parser = subparsers.add_parser('validate', help='Check a workflow file')
    validate_parser.add_argument('workflow', help='Path to workflow JSON file')

    presets_parser = subparsers.add_parser('presets', help='List or export preset workflows')
    presets_parser.add_argument('--export', metavar='PRESET_ID', help='Preset to export')
    presets_parser.add_argument('-o', '--output', help='Output file for --export')

    subparsers.add_parser('version', help='Show version information')

    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    if args.command == 'version':
        print(f"mflow {__version__}")
        sys.exit(0)

    if args.command == 'serve':
        from mflow.nodes.server import main as serve_main
        argv = []
        for flag, value in (('--config', args.config), ('--port', args.port),
                            ('--host', args.host), ('--workflow', args.workflow)):
            if value is not None:
                argv += [flag, str(value)]
        serve_main(argv)
        sys.exit(0)

    if args.command == 'run':
        from mflow.nodes.runner import run_from_args
        sys.exit(run_from_args(args))

    if args.command == 'validate':
        sys.exit(cmd_validate(args))

    if args.command == 'presets':
        sys.exit(cmd_presets(args))


if __name__ == '__main__':
    main()
