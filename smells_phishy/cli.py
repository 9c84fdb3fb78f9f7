#!/usr/bin/env python3
"""
Smells Phishy CLI - Command Line Interface

Scan an email or a handful of URLs from the terminal, inspect configuration,
or start the API server.
"""

import argparse
import asyncio
import json
import sys

from pydantic import ValidationError


def _read_email(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    with open(path, "r", encoding="utf-8", errors="replace") as f:
        return f.read()


async def scan_command(args):
    """Run the full two-layer scan on an email file."""
    from smells_phishy.orchestrator import ScanOrchestrator
    from smells_phishy.schemas.scan import ScanInput

    scan_input = ScanInput(text=_read_email(args.file), urls=args.url or None)
    orchestrator = ScanOrchestrator()
    try:
        output = await orchestrator.analyze_text(scan_input)
    finally:
        await orchestrator.threat_intel.close()
        await orchestrator.gemini.close()

    print(json.dumps(output.model_dump(mode="json"), indent=2))
    return True


async def check_urls_command(args):
    """Run threat intelligence checks only."""
    from smells_phishy.orchestrator import ScanOrchestrator
    from smells_phishy.schemas.scan import UrlCheckInput

    body = UrlCheckInput(urls=args.urls)
    orchestrator = ScanOrchestrator()
    try:
        output = await orchestrator.check_urls(body.urls)
    finally:
        await orchestrator.threat_intel.close()

    print(json.dumps(output.model_dump(mode="json"), indent=2))
    return not output.is_malicious


def config_command(args):
    """Show which external services are configured."""
    from smells_phishy.config.settings import get_settings

    settings = get_settings()
    for name, configured in settings.configured_providers().items():
        print(f"{name:<22} {'configured' if configured else 'missing'}")
    print(f"{'rate limit':<22} {settings.RATE_LIMIT_MAX_REQUESTS} per {settings.RATE_LIMIT_WINDOW_SECONDS}s")
    print(f"{'ai quota':<22} {settings.GEMINI_DAILY_LIMIT}/day, {settings.GEMINI_MINUTE_LIMIT}/minute")
    return True


async def start_server_command(args):
    """Start the API server."""
    import uvicorn

    print(f"Starting Smells Phishy server on {args.host}:{args.port}")
    config = uvicorn.Config(
        "smells_phishy.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level
    )
    server = uvicorn.Server(config)
    await server.serve()
    return True


def create_parser():
    """Create the main argument parser."""
    parser = argparse.ArgumentParser(
        prog="smells-phishy",
        description="Smells Phishy CLI - phishing detection for email content",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s scan message.txt                          # Full scan of an email
  cat message.txt | %(prog)s scan -                  # Read the email from stdin
  %(prog)s check-urls https://example.com/login      # Threat intel only
  %(prog)s config                                    # Show configured services
  %(prog)s server --reload                           # Start development server
        """
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    scan_parser = subparsers.add_parser('scan', help='Scan email content')
    scan_parser.add_argument('file', help='Email text file, or - for stdin')
    scan_parser.add_argument('--url', action='append', help='Extra URL to check (repeatable)')

    urls_parser = subparsers.add_parser('check-urls', help='Check URLs against threat intelligence')
    urls_parser.add_argument('urls', nargs='+', help='Absolute URLs')

    subparsers.add_parser('config', help='Show configuration status')

    server_parser = subparsers.add_parser('server', help='Start API server')
    server_parser.add_argument('--host', default='localhost', help='Host to bind to')
    server_parser.add_argument('--port', type=int, default=8000, help='Port to bind to')
    server_parser.add_argument('--reload', action='store_true', help='Enable auto-reload')
    server_parser.add_argument('--log-level', default='info', choices=['debug', 'info', 'warning', 'error'])

    return parser


async def async_main(argv=None):
    """Async main function for commands that need async support."""
    from smells_phishy.config.logging import configure_logging

    parser = create_parser()
    args = parser.parse_args(argv)
    configure_logging(log_format="console", stream=sys.stderr)

    if args.command == 'scan':
        return await scan_command(args)
    if args.command == 'check-urls':
        return await check_urls_command(args)
    if args.command == 'config':
        return config_command(args)
    if args.command == 'server':
        return await start_server_command(args)

    parser.print_help()
    return False


def main(argv=None):
    """Main entry point."""
    try:
        success = asyncio.run(async_main(argv))
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        success = False
    except (ValidationError, OSError) as e:
        print(f"\nError: {e}", file=sys.stderr)
        success = False
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
