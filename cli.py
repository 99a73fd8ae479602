#!/usr/bin/env python3
"""
Command-line interface for the approval flow notification connector.

Usage:
    python cli.py [command] [options]

Commands:
    serve           Start the API server
    post-deploy     Create the approval flow push subscription
    pre-undeploy    Delete the approval flow push subscription
    test            Run the test suite

Examples:
    python cli.py serve --reload
    python cli.py post-deploy
    python cli.py test -v
"""

import argparse
import subprocess
import sys


def run_tests(args: list[str]) -> int:
    """Run the test suite."""
    cmd = [sys.executable, "-m", "pytest"] + args
    return subprocess.run(cmd).returncode


def run_server(host: str, port: int, reload: bool) -> int:
    """Start the API server."""
    cmd = [sys.executable, "-m", "uvicorn", "api.main:app", f"--host={host}", f"--port={port}"]
    if reload:
        cmd.append("--reload")

    print(f"Starting server at http://{host}:{port}")
    return subprocess.run(cmd).returncode


def main() -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Approval Flow Notification Connector CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s serve --reload
  %(prog)s post-deploy
  %(prog)s pre-undeploy
  %(prog)s test -v
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    serve_parser = subparsers.add_parser("serve", help="Start the API server")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    serve_parser.add_argument("--port", type=int, default=8080, help="Port to bind to")
    serve_parser.add_argument("--reload", action="store_true", help="Enable auto-reload")

    subparsers.add_parser("post-deploy", help="Create the approval flow subscription")
    subparsers.add_parser("pre-undeploy", help="Delete the approval flow subscription")

    test_parser = subparsers.add_parser("test", help="Run the test suite")
    test_parser.add_argument(
        "pytest_args",
        nargs="*",
        default=[],
        help="Arguments to pass to pytest",
    )

    args = parser.parse_args()

    if args.command == "serve":
        return run_server(args.host, args.port, args.reload)
    elif args.command == "post-deploy":
        from connector.post_deploy import run
        return run()
    elif args.command == "pre-undeploy":
        from connector.pre_undeploy import run
        return run()
    elif args.command == "test":
        return run_tests(args.pytest_args)
    else:
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
