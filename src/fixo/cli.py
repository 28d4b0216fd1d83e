"""
fixo-agent: chat with the source-modifier agent in a local repository.

Usage:
    fixo-agent "Rename the pager helper"
    fixo-agent --repo ../hello --config fixo.yaml

Without a prompt argument the first message is read from stdin. After each
answer the conversation continues until an empty line, `exit` or EOF.
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import logging
import sys
from collections.abc import Awaitable, Callable, Sequence
from pathlib import Path
from typing import Any

from .agent import DEFAULT_MAX_ITERATIONS, Agent, create_source_modifier_agent
from .concurrency import run_sync
from .config import Settings
from .errors import FixoError
from .logging import configure_logging
from .providers import OpenAIProvider, Provider
from .tools import Tool, ToolExecutionContext

logger = logging.getLogger(__name__)

InputReader = Callable[[str], Awaitable[str]]
OutputWriter = Callable[[str], None]

GREETING = "🤖 How can I assist you today? "
FOLLOW_UP_PROMPT = "\nYou: "
EXIT_COMMANDS = frozenset({"exit", "quit"})


async def _final_response(params: dict[str, Any], context: ToolExecutionContext | None) -> str:
    return params["response"]


final_response_tool = Tool(
    name="cli_final_response",
    description="Captures the agent's final response and returns it to the user.",
    parameters={
        "type": "object",
        "properties": {
            "response": {
                "type": "string",
                "description": "The final response from the agent to be displayed to the user.",
            },
        },
        "required": ["response"],
    },
    handler=_final_response,
)


async def read_line(prompt: str) -> str:
    return await run_sync(input, prompt)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="fixo-agent", description="Chat with the fixo source-modifier agent.")
    parser.add_argument("prompt", nargs="?", help="Initial prompt; read from stdin when omitted")
    parser.add_argument(
        "--repo",
        type=Path,
        default=Path.cwd(),
        help="Repository the agent works in (default: current directory)",
    )
    parser.add_argument("--config", type=Path, help="YAML or TOML settings file (default: environment)")
    parser.add_argument(
        "--max-iterations",
        type=int,
        default=DEFAULT_MAX_ITERATIONS,
        help=f"Iteration budget per message (default: {DEFAULT_MAX_ITERATIONS})",
    )
    parser.add_argument("--once", action="store_true", help="Exit after the first answer")
    return parser


def load_settings(config_path: Path | None) -> Settings:
    if config_path is not None:
        return Settings.from_file(config_path)
    return Settings.from_env()


async def chat(
    agent: Agent,
    prompt: str,
    *,
    read_input: InputReader = read_line,
    write: OutputWriter = print,
    once: bool = False,
) -> int:
    """Run the agent on `prompt`, then on each follow-up message. Returns the exit code."""
    while True:
        result = await agent.run(prompt, tool_choice="required")
        if result.status == "error":
            write(f"\n❌ Agent error: {result.error}")
            return 1
        if result.output is not None:
            write("\n✅ Agent's Final Output:")
            write(str(result.output))
        else:
            write("\n⚠️ Agent finished, but no explicit output was captured via the output tool.")

        if once:
            return 0
        try:
            prompt = (await read_input(FOLLOW_UP_PROMPT)).strip()
        except EOFError:
            return 0
        if not prompt or prompt.lower() in EXIT_COMMANDS:
            return 0


async def run_cli(
    args: argparse.Namespace,
    *,
    provider: Provider | None = None,
    read_input: InputReader = read_line,
    write: OutputWriter = print,
) -> int:
    settings = load_settings(args.config)
    configure_logging(settings.logging)

    prompt = args.prompt
    if not prompt:
        try:
            prompt = await read_input(GREETING)
        except EOFError:
            prompt = ""
    if not prompt.strip():
        write("🔴 No input provided. Exiting.")
        return 1

    repo_path = args.repo.resolve()
    logger.info("Starting conversational agent: repo=%s", repo_path)
    config = dataclasses.replace(settings.agent, conversational=True, max_iterations=args.max_iterations)
    agent = create_source_modifier_agent(
        provider or OpenAIProvider(settings.openai),
        repo_path,
        output_tool=final_response_tool,
        config=config,
        context_extra={"input_reader": read_input},
    )
    return await chat(agent, prompt.strip(), read_input=read_input, write=write, once=args.once)


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return asyncio.run(run_cli(args))
    except FixoError as e:
        print(f"❌ {e.message}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
