"""
WeaverChat CLI - Command-line interface for streaming tool-using chats.

Commands:
    weaverchat providers                 List supported providers
    weaverchat models -p openai -k KEY   List a provider's models
    weaverchat chat -m gpt-4o -k KEY     Start an interactive chat
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional

from .exceptions import WeaverChatError


def _configure_logging(args: argparse.Namespace) -> None:
    level = getattr(args, "log_level", None) or ("DEBUG" if getattr(args, "verbose", False) else "WARNING")
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def cmd_providers(args: argparse.Namespace) -> None:
    """List every registered provider."""
    from .providers import PROVIDERS

    print("Supported Providers:\n")
    for provider in PROVIDERS.values():
        listing = "model list" if provider.supports_model_list else "fixed models"
        print(f"  {provider.id:<10} {provider.name:<20} {provider.wire_format.value:<10} {listing}")
        print(f"    {provider.default_base_url}")


def cmd_models(args: argparse.Namespace) -> None:
    """List the models a provider offers."""
    from .discovery import fetch_models, fetch_models_direct
    from .providers import get_provider_config

    try:
        get_provider_config(args.provider)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    fetch = fetch_models_direct if args.strict else fetch_models
    try:
        models = asyncio.run(fetch(args.provider, args.api_key or "", args.base_url))
    except WeaverChatError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if not models:
        print(f"No models found for {args.provider}.")
        return

    print(f"Models for {args.provider}:\n")
    for model in models:
        label = f"  ({model.name})" if model.name != model.id else ""
        print(f"  {model.id}{label}")


def _build_config(args: argparse.Namespace):
    from .config import ChatConfig

    config = ChatConfig.from_yaml(args.config) if args.config else ChatConfig.from_env()
    overrides = {
        "model": args.model,
        "provider": args.provider,
        "api_key": args.api_key,
        "base_url": args.base_url,
        "system_prompt": args.system,
        "max_turns": args.max_turns,
    }
    data = dict(vars(config))
    # A new model or provider re-derives the provider and its default URL.
    if args.provider or args.model:
        data["provider"] = None
        data["base_url"] = None
    data.update({k: v for k, v in overrides.items() if v is not None})
    return ChatConfig.from_dict(data)


def _print_callbacks(quiet: bool):
    from .agent import StreamCallbacks

    def on_token(text: str) -> None:
        sys.stdout.write(text)
        sys.stdout.flush()

    def on_tool_call(tool_call) -> None:
        if not quiet:
            print(f"\n[tool] {tool_call.name}({dict(tool_call.arguments)})", file=sys.stderr)

    def on_error(error: Exception) -> None:
        print(f"\nError: {error}", file=sys.stderr)

    return StreamCallbacks(on_token=on_token, on_tool_call=on_tool_call, on_error=on_error)


async def _run_chat(args: argparse.Namespace) -> int:
    from .agent import ChatSession, LoopState
    from .tools import HttpToolCatalog

    config = _build_config(args)
    if not config.api_key:
        print("Error: no API key (use --api-key or WEAVERCHAT_API_KEY)", file=sys.stderr)
        return 1
    if not config.model:
        print("Error: no model (use --model or WEAVERCHAT_MODEL)", file=sys.stderr)
        return 1

    catalog: Optional[HttpToolCatalog] = None
    if args.tools_url:
        catalog = HttpToolCatalog(args.tools_url, api_key=args.tools_api_key, server_id=args.server_id)
        try:
            tools = await catalog.refresh()
        except WeaverChatError as e:
            print(f"Error loading tools: {e}", file=sys.stderr)
            await catalog.close()
            return 1
        if not args.quiet:
            print(f"Loaded {len(tools)} tools: {', '.join(t.name for t in tools) or '-'}", file=sys.stderr)

    session = ChatSession(config, catalog=catalog)
    callbacks = _print_callbacks(args.quiet)
    status = 0
    try:
        if args.message:
            await session.send(args.message, callbacks)
            print()
            return 0 if session.state == LoopState.DONE else 1

        print(f"Chatting with {config.model} via {config.provider_config.name}. Ctrl-D to quit.")
        while True:
            try:
                text = await asyncio.to_thread(input, "\n> ")
            except EOFError:
                print()
                break
            if not text.strip():
                continue
            if text.strip() in ("/quit", "/exit"):
                break
            if text.strip() == "/clear":
                session.clear()
                print("(history cleared)")
                continue
            await session.send(text, callbacks)
            print()
            if session.state != LoopState.DONE:
                status = 1
    finally:
        if catalog is not None:
            await catalog.close()
    return status


def cmd_chat(args: argparse.Namespace) -> None:
    """Run an interactive (or one-shot) chat."""
    try:
        status = asyncio.run(_run_chat(args))
    except KeyboardInterrupt:
        print("\nChat cancelled")
        sys.exit(0)
    except (ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    sys.exit(status)


def main(argv: Optional[list[str]] = None) -> None:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        prog="weaverchat",
        description="WeaverChat CLI - Stream tool-using chats against LLM providers",
    )
    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s 0.1.0",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Providers command
    providers_parser = subparsers.add_parser("providers", help="List supported providers")
    providers_parser.set_defaults(func=cmd_providers)

    # Models command
    models_parser = subparsers.add_parser("models", help="List a provider's models")
    models_parser.add_argument("--provider", "-p", default="openai", help="Provider id (default: openai)")
    models_parser.add_argument("--api-key", "-k", help="Provider API key")
    models_parser.add_argument("--base-url", help="Override the provider base URL")
    models_parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail instead of falling back to the built-in model list",
    )
    models_parser.set_defaults(func=cmd_models)

    # Chat command
    chat_parser = subparsers.add_parser("chat", help="Start a chat session")
    chat_parser.add_argument("--config", "-c", help="YAML config file (default: environment)")
    chat_parser.add_argument("--provider", "-p", help="Provider id (inferred from the model)")
    chat_parser.add_argument("--model", "-m", help="Model name")
    chat_parser.add_argument("--api-key", "-k", help="Provider API key")
    chat_parser.add_argument("--base-url", help="Override the provider base URL")
    chat_parser.add_argument("--system", help="System prompt")
    chat_parser.add_argument("--max-turns", type=int, help="Tool loop turn limit (default: 10)")
    chat_parser.add_argument("--tools-url", help="Tool management API base URL")
    chat_parser.add_argument("--tools-api-key", help="API key for the tool management API")
    chat_parser.add_argument("--server-id", help="Only offer tools published on this server")
    chat_parser.add_argument("--message", help="Send one message and exit")
    chat_parser.add_argument(
        "--quiet",
        "-q",
        action="store_true",
        help="Do not print tool activity",
    )
    chat_parser.set_defaults(func=cmd_chat)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    _configure_logging(args)
    args.func(args)


if __name__ == "__main__":
    main()
