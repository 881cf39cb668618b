"""Main entry point for agentloop."""

import asyncio
import os
import sys
from pathlib import Path

import typer
from rich.console import Console

from agentloop.actions import default_namespace_builders
from agentloop.agent import Agent
from agentloop.config import DEFAULT_CONFIG_PATH, Config, get_config, set_config
from agentloop.exceptions import AgentLoopError, ConfigurationError, IterationBudgetExceededError
from agentloop.llm import GenerationOptions, create_client
from agentloop.logging import configure_logging, log
from agentloop.rag import OllamaEmbedder
from agentloop.rag.naive import NaiveVectorStore
from agentloop.state import Completion
from agentloop.task import Tasklet

app = typer.Typer(help="agentloop - autonomous agent loop for local models")
console = Console()


def _report(completion: Completion) -> None:
    if completion.impossible:
        console.print(f"\n[bold red]task is impossible[/bold red]: '{completion.reason}'")
    else:
        console.print(f"\n[bold green]task complete[/bold green]: '{completion.reason}'")


async def run_agent(tasklet: Tasklet) -> Completion:
    """Build the agent from the global config and run it to completion."""
    cfg = get_config()
    client = create_client(
        provider=cfg.model.provider,
        base_url=cfg.model.base_url,
        timeout=cfg.model.timeout,
    )

    store: NaiveVectorStore | None = None
    embedder: OllamaEmbedder | None = None
    try:
        if cfg.rag.enabled:
            embedder = OllamaEmbedder(cfg.rag.embedding_model, base_url=cfg.model.base_url)
            store = await NaiveVectorStore.create(embedder, cfg.rag)

        agent = Agent(
            client,
            cfg.model.model,
            tasklet,
            max_iterations=cfg.agent.max_iterations,
            options=GenerationOptions.from_config(cfg.model),
            history_window=cfg.agent.history_window,
            persist_state_path=cfg.persistence.state_path or None,
            persist_prompt_path=cfg.persistence.prompt_path or None,
            namespace_builders=default_namespace_builders(store, rag_top_k=cfg.rag.top_k),
        )
        log.info(
            "Agent started",
            model=cfg.model.model,
            namespaces=agent.state.used_namespaces(),
            max_iterations=cfg.agent.max_iterations,
        )
        return await agent.run()
    finally:
        await client.close()
        if embedder is not None:
            await embedder.close()


@app.command()
def run(
    tasklet: str = typer.Option(..., "-t", "--tasklet", help="Tasklet YAML file or folder"),
    prompt: str = typer.Option("", "-p", "--prompt", help="Override the tasklet prompt"),
    config: str = typer.Option("", "-c", "--config", help="Path to config file"),
    model: str = typer.Option("", "-m", "--model", help="Override model"),
    max_iterations: int = typer.Option(-1, "--max-iterations", help="Override step budget (0 = unbounded)"),
    persist_state: str = typer.Option("", "--persist-state", help="Write state snapshots to this file"),
    persist_prompt: str = typer.Option("", "--persist-prompt", help="Write rendered prompts to this file"),
    log_file: str = typer.Option("", "--log-file", help="Append JSON log lines to this file"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Debug logging"),
) -> None:
    """Run a tasklet until it completes or the step budget runs out."""
    if verbose:
        os.environ["AGENTLOOP_LOGGING__LEVEL"] = "DEBUG"

    try:
        cfg = Config.from_yaml(Path(config)) if config else Config.load()
    except ConfigurationError as e:
        console.print(f"[bold red]configuration error[/bold red]: {e}")
        sys.exit(1)

    if model:
        cfg.model.model = model
    if max_iterations >= 0:
        cfg.agent.max_iterations = max_iterations
    if persist_state:
        cfg.persistence.state_path = persist_state
    if persist_prompt:
        cfg.persistence.prompt_path = persist_prompt
    if log_file:
        cfg.logging.file = log_file
    if verbose:
        cfg.logging.level = "DEBUG"
    set_config(cfg)
    configure_logging()

    try:
        task = Tasklet.from_path(tasklet, prompt=prompt or None)
        completion = asyncio.run(run_agent(task))
    except IterationBudgetExceededError as e:
        console.print(f"\n[bold yellow]step budget exhausted[/bold yellow]: {e}")
        sys.exit(2)
    except AgentLoopError as e:
        log.error("Run failed", error=str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        log.info("Shutting down...")
        sys.exit(130)

    _report(completion)


@app.command("init-config")
def init_config(
    path: str = typer.Option("", "--path", help="Where to write the config (default ~/.agentloop/config.yaml)"),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file"),
) -> None:
    """Write a config file with the default settings."""
    config_path = Path(path).expanduser() if path else DEFAULT_CONFIG_PATH
    if config_path.exists() and not force:
        console.print(f"[bold yellow]{config_path} already exists[/bold yellow], use --force to overwrite")
        sys.exit(1)

    Config().save(config_path)
    console.print(f"config written to {config_path}")


@app.command()
def version() -> None:
    """Show version information."""
    from agentloop import __version__
    print(f"agentloop v{__version__}")


if __name__ == "__main__":
    app()
