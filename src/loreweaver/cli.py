"""
Command-line interface for loreweaver.

One-shot commands over a world file:

    loreweaver --world world.yaml context --types character location --ids luke
    loreweaver --world world.yaml lore "Who is Luke Skywalker?"
    loreweaver --world world.yaml chat "I draw my blaster" --session s1 --stream
    loreweaver --world world.yaml analyze --file chapter.txt
    loreweaver --world world.yaml serve --port 8000
"""

import argparse
import asyncio
import sys
from pathlib import Path

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from .analysis import AnalysisBundle
from .config import Settings, configure_logging
from .context import AssembledContext, ContextRequest, ContextType
from .engine import NarrativeEngine
from .errors import BackendTransportError


console = Console()

THEME = {
    "primary": "cyan",
    "accent": "magenta",
    "warning": "yellow",
    "danger": "red",
    "dim": "grey50",
}


# -----------------------------------------------------------------------------
# Rendering
# -----------------------------------------------------------------------------

def show_context(assembled: AssembledContext) -> None:
    if assembled.text:
        console.print(Panel(assembled.text, title="Context", border_style=THEME["primary"]))
    else:
        console.print(f"[{THEME['dim']}]No context assembled[/]")

    table = Table(title="Fragments", show_header=True)
    table.add_column("Type")
    table.add_column("Tokens", justify="right")
    for fragment in assembled.fragments:
        table.add_row(fragment.source_type.value, str(fragment.tokens))
    console.print(table)

    for ctx_type, reason in assembled.failures.items():
        console.print(f"[{THEME['warning']}]{ctx_type.value} failed:[/] {reason}")
    if assembled.skipped:
        skipped = ", ".join(t.value for t in assembled.skipped)
        console.print(f"[{THEME['dim']}]Skipped (budget): {skipped}[/]")
    console.print(f"[{THEME['dim']}]{assembled.remaining_tokens} tokens remaining[/]")


def show_analysis(bundle: AnalysisBundle) -> None:
    sentiment = bundle.sentiment
    console.print(Panel(
        f"Overall: {sentiment.overall}  Tension: {sentiment.tension}/10  "
        f"Conflict: {sentiment.conflict_level}/10\nMood: {sentiment.mood}",
        title="Sentiment",
        border_style=THEME["primary"],
    ))

    entities = Table(title="Entities", show_header=True)
    entities.add_column("Kind")
    entities.add_column("Name")
    entities.add_column("New", justify="center")
    for kind in ("characters", "locations", "factions", "items"):
        for entity in getattr(bundle.entities, kind):
            entities.add_row(kind, entity.name, "yes" if entity.is_new else "")
    console.print(entities)

    themes = bundle.themes
    console.print(Panel(
        ", ".join(themes.primary_themes) or "none detected",
        title="Themes",
        border_style=THEME["accent"],
    ))

    check = bundle.contradictions
    style = THEME["primary"] if check.consistency_score >= 70 else THEME["warning"]
    console.print(f"[{style}]Consistency: {check.consistency_score}/100[/]")
    for contradiction in check.contradictions:
        console.print(f"  [{THEME['warning']}]{contradiction.severity}[/] {contradiction.description}")
    if bundle.degraded:
        console.print(f"[{THEME['dim']}]Degraded axes: {', '.join(bundle.degraded)}[/]")


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------

async def run_context(engine: NarrativeEngine, args) -> int:
    request = ContextRequest(
        types=args.types or list(ContextType),
        session_id=args.session,
        include_ids=args.ids or [],
        query=args.query,
        max_items=args.max_items,
        max_tokens=args.max_tokens,
    )
    show_context(await engine.assembler.assemble(request))
    return 0


async def run_lore(engine: NarrativeEngine, args) -> int:
    answer = await engine.lore.process_lore_query(args.query, args.session)
    if not answer:
        console.print(f"[{THEME['dim']}]Not a lore question[/]")
        return 1
    console.print(Panel(Markdown(answer), title="Lore", border_style=THEME["accent"]))
    return 0


async def run_chat(engine: NarrativeEngine, args) -> int:
    if args.stream:
        async for chunk in engine.stream_response(args.message, args.session):
            console.print(chunk, end="", markup=False, highlight=False)
        console.print()
        return 0

    reply = await engine.respond(args.message, args.session, args.ids)
    title = "Lore" if reply.response_type == "lore" else "Game Master"
    console.print(Panel(Markdown(reply.response), title=title, border_style=THEME["primary"]))
    return 0


async def run_analyze(engine: NarrativeEngine, args) -> int:
    text = Path(args.file).read_text(encoding="utf-8") if args.file else args.text
    if not text:
        console.print(f"[{THEME['danger']}]Nothing to analyze: pass text or --file[/]")
        return 2
    show_analysis(await engine.analyzer.analyze_story(text, args.session))
    return 0


COMMANDS = {
    "context": run_context,
    "lore": run_lore,
    "chat": run_chat,
    "analyze": run_analyze,
}


async def run(settings: Settings, args) -> int:
    async with NarrativeEngine.from_settings(settings) as engine:
        try:
            return await COMMANDS[args.command](engine, args)
        except BackendTransportError as e:
            console.print(Panel(
                f"Completion backend failed: {e}",
                border_style=THEME["danger"],
            ))
            return 1


# -----------------------------------------------------------------------------
# Entry Point
# -----------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="loreweaver", description="loreweaver - narrative engine")
    parser.add_argument("--world", "-w", help="YAML world file to load")
    parser.add_argument("--log-level", default=None, help="Log level (default: WARNING)")
    sub = parser.add_subparsers(dest="command", required=True)

    context = sub.add_parser("context", help="Assemble prompt context")
    context.add_argument(
        "--types", nargs="*", type=ContextType,
        metavar="TYPE", help="Context types (default: all)",
    )
    context.add_argument("--session", help="Session id")
    context.add_argument("--ids", nargs="*", help="Entity ids to include")
    context.add_argument("--query", help="Search query")
    context.add_argument("--max-items", type=int, default=5)
    context.add_argument("--max-tokens", type=int, default=4000)

    lore = sub.add_parser("lore", help="Answer a lore question")
    lore.add_argument("query")
    lore.add_argument("--session", help="Session id")

    chat = sub.add_parser("chat", help="Send a player message")
    chat.add_argument("message")
    chat.add_argument("--session", help="Session id")
    chat.add_argument("--ids", nargs="*", help="Entity ids to include")
    chat.add_argument("--stream", action="store_true", help="Stream the reply")

    analyze = sub.add_parser("analyze", help="Analyze a story passage")
    analyze.add_argument("text", nargs="?")
    analyze.add_argument("--file", "-f", help="Read the passage from a file")
    analyze.add_argument("--session", help="Session id for contradiction checks")

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    settings = Settings.from_env(world_file=args.world, log_level=args.log_level)
    configure_logging(args.log_level or "WARNING")

    if args.command == "serve":
        import uvicorn
        from .api import create_app

        uvicorn.run(create_app(settings), host=args.host, port=args.port)
        return 0

    return asyncio.run(run(settings, args))


if __name__ == "__main__":
    sys.exit(main())
