#!/usr/bin/env python3
"""
echotap CLI

Command-line interface for the echotap mock server and template rendering.

Commands:
    mock        - Start mock HTTP server from a stub mapping file
    render      - Render a response template against a request body

Examples:
    # Start mock server
    echotap mock mappings.json --port 8080

    # Try a placeholder template
    echotap render response.json --body request.xml --url "/orders/10?x=1"
"""

import argparse
import logging
import sys
from pathlib import Path

from .common import URLParts
from .mock import MockServer, MockConfig
from .transform import (
    BodyTransformer,
    IncomingRequest,
    ResponseDefinition,
    TemplateBodyTransformer,
    TransformError,
    WebhookConfig
)


def cmd_mock(args):
    """
    Start mock HTTP server serving stub mappings.

    Args:
        args: Parsed command-line arguments
    """
    print(f"echotap Mock Server")

    if args.verbose:
        print(f"Verbose mode enabled (per-request console logging)")

    config = MockConfig(
        host=args.host,
        port=args.port,
        admin_enabled=not args.no_admin,
        log_level=args.log_level,
        verbose_mode=args.verbose,
        webhook=WebhookConfig(
            max_workers=args.webhook_workers,
            dispatch_delay_seconds=args.webhook_delay,
            trust_all_certificates=not args.verify_webhook_certs
        )
    )

    try:
        server = MockServer(args.stubs_file, config=config)
    except (FileNotFoundError, ValueError) as e:
        print(f"Failed to create mock server: {e}")
        sys.exit(1)

    try:
        server.start()
    except KeyboardInterrupt:
        print("\n\nMock server stopped")
    finally:
        server.close()


def _parse_header(value: str):
    name, sep, header_value = value.partition(':')
    if not sep:
        raise argparse.ArgumentTypeError(f"Header must look like 'Name: value', got '{value}'")
    return name.strip(), header_value.strip()


def cmd_render(args):
    """
    Render a template file once and print the result.

    Args:
        args: Parsed command-line arguments
    """
    template = Path(args.template_file).read_text(encoding='utf-8')
    body = Path(args.body).read_bytes() if args.body else b''
    relative_url, absolute_url = URLParts.split(args.url)

    request = IncomingRequest(
        method=args.method.upper(),
        url=relative_url,
        absolute_url=absolute_url,
        headers=args.header or [],
        body=body
    )
    parameters = {'urlRegex': args.url_regex} if args.url_regex else {}
    definition = ResponseDefinition(body=template, transformer_parameters=parameters)

    if args.template_mode:
        transformer = TemplateBodyTransformer()
    else:
        transformer = BodyTransformer()

    try:
        rendered = transformer.transform(request, definition, parameters)
    except TransformError as e:
        print(f"Render failed ({type(e).__name__}): {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        if isinstance(transformer, TemplateBodyTransformer):
            # Let queued webhooks finish before exiting
            transformer.context_builder.http.shutdown(wait=True)

    print(rendered.body)


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="echotap - Mock server responses built from the incoming request",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Start mock server
  %(prog)s mock mappings.json --port 8080

  # Render a placeholder template against an XML body
  %(prog)s render response.json --body request.xml

  # Render a Jinja2 template with a header and URL capture groups
  %(prog)s render response.json --template-mode -H "x-jwt: eyJ..." \\
      --url /param/10 --url-regex "/param/(?<var>.*?)"
        """
    )

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    # --- MOCK command ---
    mock_parser = subparsers.add_parser('mock', help='Start mock HTTP server')
    mock_parser.add_argument('stubs_file', help='Stub mapping file (JSON or YAML)')
    mock_parser.add_argument('--host', default='127.0.0.1', help='Host to bind (default: 127.0.0.1)')
    mock_parser.add_argument('-p', '--port', type=int, default=8080, help='Port to bind (default: 8080)')
    mock_parser.add_argument('--no-admin', action='store_true', help='Disable admin API')
    mock_parser.add_argument('--log-level', default='info', choices=['debug', 'info', 'warning', 'error'],
                             help='Log level (default: info)')
    mock_parser.add_argument('--verbose', action='store_true', help='Print each request to the console')
    mock_parser.add_argument('--webhook-workers', type=int, default=10,
                             help='Concurrent webhook workers (default: 10)')
    mock_parser.add_argument('--webhook-delay', type=float, default=0.2,
                             help='Seconds to wait before sending each webhook (default: 0.2)')
    mock_parser.add_argument('--verify-webhook-certs', action='store_true',
                             help='Validate TLS certificates of webhook targets (disabled by default)')

    # --- RENDER command ---
    render_parser = subparsers.add_parser('render', help='Render a response template')
    render_parser.add_argument('template_file', help='Response template file')
    render_parser.add_argument('--body', help='File holding the request body')
    render_parser.add_argument('--url', default='/', help='Request URL (default: /)')
    render_parser.add_argument('--method', default='POST', help='Request method (default: POST)')
    render_parser.add_argument('--url-regex', help='urlRegex parameter with named capture groups')
    render_parser.add_argument('-H', '--header', action='append', type=_parse_header,
                               help="Request header 'Name: value' (repeatable)")
    render_parser.add_argument('--template-mode', action='store_true',
                               help='Use the Jinja2 template transformer instead of $(path) placeholders')

    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.WARNING, format='%(levelname)s %(name)s: %(message)s')

    if args.command == 'mock':
        cmd_mock(args)
    elif args.command == 'render':
        cmd_render(args)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == '__main__':
    main()
