#!/usr/bin/env python3
"""FeatureSmith - turn a feature request into React components.

Usage:
    python main.py build --prompt "add a counter with increment, decrement, reset"
    python main.py build --prompt "..." --dry-run          # plan only
    python main.py build --prompt "..." --verbose          # show issues and checks
    python main.py artifacts                               # list stored artifacts
    python main.py patterns                                # show learned patterns
"""

import argparse
import logging
import socket
import sys
import threading

from werkzeug.serving import make_server

from core.errors import ExternalServiceError, ParseError
from core.orchestrator import Orchestrator
from core.pattern_store import format_patterns
from server import create_app


def _format_issues(issues):
    """Format review issues for CLI display."""
    lines = []
    for issue in issues:
        loc = issue["location"].get("artifact") or f"step {issue['location'].get('step')}"
        lines.append(f"  [{issue['severity'].upper()}] {loc} - {issue['type']}: {issue['description']}")
    return "\n".join(lines)


def _free_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def _start_preview_server(orchestrator):
    """Serve preview pages in the background so the verifier can load them."""
    port = _free_port()
    server = make_server("127.0.0.1", port, create_app(orchestrator), threaded=True)
    threading.Thread(target=server.serve_forever, daemon=True).start()
    orchestrator.verifier.preview_base_url = f"http://127.0.0.1:{port}"
    return server


def cmd_build(args):
    """Run the feature pipeline."""
    orchestrator = Orchestrator()
    orchestrator.initialize()

    if args.dry_run:
        try:
            plan = orchestrator.plan_only(args.prompt)
        except (ParseError, ExternalServiceError) as e:
            print(f"Planning failed: {e}")
            return 1
        print(f"Feature:    {plan.analysis.feature}")
        print(f"Complexity: {plan.analysis.complexity}")
        print("\nSteps:")
        for step in plan.steps:
            print(f"  {step.id}. {step.description} -> {', '.join(step.target_artifacts)}")
        criteria = plan.test_criteria
        print(f"\nTest criteria: {len(criteria.visual)} visual, {len(criteria.functional)} functional")
        return 0

    server = _start_preview_server(orchestrator)
    try:
        result = orchestrator.process_feature_request(args.prompt)
    finally:
        server.shutdown()

    print(f"\nTask:   {result['taskId']}")
    print(f"Status: {result['status']}")
    if result.get("error"):
        print(f"Error:  {result['error']}")

    updates = result["fileUpdates"]
    if updates:
        print(f"\nWrote {sum(1 for u in updates if u['success'])}/{len(updates)} artifact(s):")
        for u in updates:
            mark = "ok" if u["success"] else f"FAILED ({u['error']})"
            print(f"  {u['artifactPath']}  {mark}")

    if args.verbose:
        fixes = result.get("fixes")
        if fixes and fixes["issues"]:
            print("\nReview issues:")
            print(_format_issues(fixes["issues"]))
        tests = result.get("testResults")
        if tests:
            print("\nVerification:")
            for entry in tests["perArtifact"]:
                print(f"  {entry['artifactPath']}: {len(entry['passedChecks'])} passed, "
                      f"{len(entry['failures'])} failed")
                for failure in entry["failures"]:
                    print(f"    - {failure['message']}")

    return 0 if result["success"] else 1


def cmd_artifacts(args):
    orchestrator = Orchestrator()
    orchestrator.initialize()
    artifacts = orchestrator.context_store.list_all()
    if not artifacts:
        print("No artifacts yet.")
    for path, _ in artifacts:
        print(f"  {path}")
    return 0


def cmd_patterns(args):
    orchestrator = Orchestrator()
    print(format_patterns(orchestrator.pattern_store.recent(args.limit)))
    return 0


def main():
    parser = argparse.ArgumentParser(
        prog="featuresmith",
        description="Multi-agent React feature generation pipeline",
    )
    parser.add_argument("--log-level", default="WARNING",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="Logging level (default: WARNING)")
    subparsers = parser.add_subparsers(dest="command")

    build_parser = subparsers.add_parser("build", help="Run the feature pipeline")
    build_parser.add_argument("--prompt", required=True, help="Natural language feature request")
    build_parser.add_argument("--dry-run", action="store_true",
                              help="Run planner only, show steps and test criteria")
    build_parser.add_argument("--verbose", action="store_true",
                              help="Show review issues and verification details")

    subparsers.add_parser("artifacts", help="List stored artifacts")

    patterns_parser = subparsers.add_parser("patterns", help="Show learned patterns")
    patterns_parser.add_argument("--limit", type=int, default=10,
                                 help="Number of recent records to show (default: 10)")

    args = parser.parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "build":
        sys.exit(cmd_build(args))
    elif args.command == "artifacts":
        sys.exit(cmd_artifacts(args))
    elif args.command == "patterns":
        sys.exit(cmd_patterns(args))
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
