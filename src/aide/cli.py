import asyncio
import sys
import textwrap
import typer
from aide.config import settings
from aide.logging import logger

app = typer.Typer(no_args_is_help=True)

@app.callback()
def main():
    """
    aide personal-assistant relay CLI.
    """
    pass

def _store():
    from aide.db import engine
    from aide.memory import MemoryStore
    return MemoryStore(engine)

@app.command(name="doctor")
def doctor():
    """
    Check system configuration and environment health.
    """
    logger.info("Running doctor check...")

    print("\n🩺 aide Doctor\n")

    print(f"Python: {sys.version.split()[0]}")
    print(f"Prefix: {sys.prefix}")

    print("\n[Configuration]")
    print(f"OPENAI_MODEL_AGENT:       {settings.OPENAI_MODEL_AGENT}")
    print(f"COMMAND_PREFIX:           {settings.COMMAND_PREFIX}")
    print(f"MEMORY_SEARCH_LIMIT:      {settings.MEMORY_SEARCH_LIMIT}")
    print(f"MEMORY_RECENT_LIMIT:      {settings.MEMORY_RECENT_LIMIT}")
    print(f"MEMORY_SWEEP_INTERVAL_HOURS: {settings.MEMORY_SWEEP_INTERVAL_HOURS}")
    owners = ", ".join(sorted(settings.allowed_owners)) or "(any)"
    print(f"ALLOWED_OWNERS:           {owners}")

    api_key_status = "✅ Set" if settings.OPENAI_API_KEY and settings.OPENAI_API_KEY.get_secret_value() else "❌ Missing"
    print(f"OPENAI_API_KEY:           {api_key_status}")

    data_dir = settings.DATA_DIR
    if data_dir.exists() and data_dir.is_dir():
        print(f"\n[Data Directory]          ✅ Found: {data_dir.absolute()}")
    else:
        print(f"\n[Data Directory]          ❌ Missing: {data_dir.absolute()} (run `aide db init`)")

    print("\nDoctor check complete.")


db_app = typer.Typer(help="Database management commands.")
app.add_typer(db_app, name="db")

@db_app.command("init")
def init():
    """Initialize the database tables and search index."""
    from aide.db import init_db
    try:
        init_db()
        logger.info("Database initialized successfully.")
        print("✅ Database initialized.")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        print(f"❌ Failed: {e}")
        raise typer.Exit(code=1)

@db_app.command("reindex")
def reindex():
    """Rebuild the FTS5 memory index."""
    from aide.db import engine
    from aide.search import reindex_all
    try:
        reindex_all(engine)
        print("✅ Search index rebuilt.")
    except Exception as e:
        logger.error(f"Reindex failed: {e}")
        print(f"❌ Failed: {e}")
        raise typer.Exit(code=1)


memory_app = typer.Typer(help="Inspect and maintain long-term memory.")
app.add_typer(memory_app, name="memory")

@memory_app.command("list")
def list_memories(owner: str, limit: int = typer.Option(20, help="Maximum memories to show")):
    """List an owner's memories, most salient first."""
    memories = _store().for_owner(owner, limit)
    if not memories:
        print("No memories saved yet.")
        return
    for m in memories:
        print(f"#{m.id} [{m.sector.value}] salience={m.salience:.2f} accessed={m.accessed_at:%Y-%m-%d}")
        print(textwrap.indent(m.content, "    "))

@memory_app.command("search")
def search(owner: str, query: str, limit: int = typer.Option(10, help="Maximum hits")):
    """Keyword search an owner's memories (does not reinforce them)."""
    from aide.memory import extract_keywords
    keywords = extract_keywords(query, max_keywords=settings.MEMORY_MAX_KEYWORDS)
    if not keywords:
        print("No searchable keywords in query.")
        return
    results = _store().search_by_keywords(owner, keywords, limit)
    if not results:
        print("No results found.")
        return

    print(f"Found {len(results)} results:")
    for i, m in enumerate(results, 1):
        print(f"{i}. [ID {m.id}] ({m.sector.value}) {m.content}")

@memory_app.command("sweep")
def sweep():
    """Run one decay-and-prune sweep now."""
    try:
        result = _store().decay_and_prune()
    except Exception as e:
        logger.error(f"Sweep failed: {e}")
        print(f"❌ Failed: {e}")
        raise typer.Exit(code=1)
    if result is None:
        print("Sweep already in progress, skipped.")
        return
    print(f"✅ Sweep complete: {result.decayed} decayed, {result.pruned} pruned.")

@memory_app.command("forget")
def forget(owner: str, yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation")):
    """Delete every memory of an owner."""
    if not yes:
        typer.confirm(f"Delete all memories for {owner}?", abort=True)
    removed = _store().clear(owner)
    print(f"Removed {removed} memories.")


@app.command(name="chat")
def chat(owner: str = typer.Argument("local", help="Owner id the conversation is scoped to")):
    """Talk to the agent from the terminal, with memory and decay sweeps active."""
    asyncio.run(_chat_loop(owner))

async def _chat_loop(owner: str):
    from aide.db import engine, init_db
    from aide.llm.openai_client import OpenAIAgent
    from aide.memory import DecaySweeper, MemoryService, MemoryStore
    from aide.relay import MessageHandler, SessionStore

    init_db()
    store = MemoryStore(engine)
    sweeper = DecaySweeper(store)
    handler = MessageHandler(
        memory=MemoryService(store, sweeper=sweeper),
        agent=OpenAIAgent(),
        sessions=SessionStore(engine),
        allowed_owners=settings.allowed_owners,
    )
    sweeper.start()
    print(f"Chatting as {owner}. Ctrl-D to quit, {settings.COMMAND_PREFIX}help for commands.")
    try:
        while True:
            try:
                text = await asyncio.to_thread(input, "> ")
            except EOFError:
                break
            if not text.strip():
                continue
            try:
                reply = await handler.handle(owner, text)
            except Exception as e:
                logger.error(f"Message handling failed: {e}")
                print("Something went wrong handling that message.")
                continue
            print(reply.text)
    finally:
        await sweeper.stop()

if __name__ == "__main__":
    app()
