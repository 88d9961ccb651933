#!/usr/bin/env python3
"""CLI entry point for Claude Gateway"""
import argparse
import os

import uvicorn
from pydantic import ValidationError

from claude_gateway.core.config import read_config_file, read_env_config
from claude_gateway.core.logging import setup_logging, get_logger
from claude_gateway.main import create_app
from claude_gateway.models.config import AppConfig


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Claude Gateway: one Messages API for Anthropic, Bedrock and Vertex AI"
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to a YAML configuration file (default: environment variables)",
    )
    parser.add_argument("--host", type=str, default=None, help="Host to bind to")
    parser.add_argument("--port", type=int, default=None, help="Port to bind to")
    parser.add_argument(
        "--api-key",
        type=str,
        default=None,
        help="Token required from every caller (default: $AUTH_TOKEN)",
    )

    providers = parser.add_subparsers(dest="provider")

    anthropic_parser = providers.add_parser("anthropic", help="Use the Anthropic API")
    anthropic_parser.add_argument(
        "--anthropic-api-key",
        type=str,
        default=os.environ.get("ANTHROPIC_API_KEY"),
    )

    bedrock_parser = providers.add_parser("bedrock", help="Use AWS Bedrock")
    bedrock_parser.add_argument("--region", type=str, default=os.environ.get("AWS_REGION"))

    vertex_parser = providers.add_parser("vertex-ai", help="Use Google Vertex AI")
    vertex_parser.add_argument(
        "--project", type=str, default=os.environ.get("VERTEXAI_PROJECT")
    )
    vertex_parser.add_argument(
        "--region", type=str, default=os.environ.get("VERTEXAI_REGION")
    )
    return parser


def resolve_config(args: argparse.Namespace) -> AppConfig:
    """Merge file or environment configuration with command line overrides"""
    if args.config:
        data = read_config_file(args.config)
    else:
        data = read_env_config(args.provider)

    server = data.setdefault("server", {})
    for key, value in (("host", args.host), ("port", args.port), ("api_key", args.api_key)):
        if value is not None:
            server[key] = value

    if args.provider == "anthropic" and args.anthropic_api_key:
        data["provider"] = {"kind": "anthropic", "api_key": args.anthropic_api_key}
    elif args.provider == "bedrock":
        data["provider"] = {"kind": "bedrock", "region": args.region}
    elif args.provider == "vertex-ai":
        data["provider"] = {"kind": "vertex-ai", "project": args.project, "region": args.region}

    return AppConfig.model_validate(data)


def main():
    """Main entry point"""
    setup_logging(log_level=os.environ.get("LOG_LEVEL", "INFO"))
    logger = get_logger()

    args = build_parser().parse_args()
    try:
        config = resolve_config(args)
    except (ValidationError, ValueError, OSError) as e:
        logger.error(f"Invalid configuration: {e}")
        raise SystemExit(1)

    setup_logging(log_level=config.log_level.upper(), log_file=config.log_file)

    if args.config:
        logger.info(f"Using config file: {args.config}")
    logger.info(f"Listening on {config.server.host}:{config.server.port}")

    uvicorn.run(
        create_app(config),
        host=config.server.host,
        port=config.server.port,
        log_config=None,  # Disable uvicorn's default logging config
        access_log=True,  # Enable access logs (will be intercepted by loguru)
    )


if __name__ == "__main__":
    main()
