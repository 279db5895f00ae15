"""CLI entry point for the generation dispatch layer."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from enum import Enum
from typing import Any, Optional

import typer
from pydantic import BaseModel

from .config import DispatchConfig
from .errors import ConfigError, ProviderError, RetriesExhausted
from .models import GenerationRequest, ModelClass
from .registry import ProviderProfile
from .runtime import GenerationRuntime
from .tokens import DEFAULT_TOKENIZER, trim_tokens

app = typer.Typer(help="Generate text and structured output through the configured LLM provider.")


class Shape(str, Enum):
    TEXT = "text"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"
    DECISION = "decision"


def _load_config() -> DispatchConfig:
    try:
        return DispatchConfig.from_env()
    except ConfigError as exc:
        typer.secho(f"Configuration error: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2) from exc


def _read_prompt(prompt: str) -> str:
    if prompt == "-":
        return sys.stdin.read()
    return prompt


def _render(value: Any) -> str:
    if isinstance(value, BaseModel):
        return value.model_dump_json()
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _describe(profile: ProviderProfile) -> str:
    models = ", ".join(f"{key.value}={value}" for key, value in profile.model_by_class.items())
    return f"{profile.provider_id}\t{profile.family}\t{profile.endpoint}\t{models}"


async def _generate(runtime: GenerationRuntime, request: GenerationRequest, provider_id: str, shape: Shape) -> Any:
    generator = runtime.generator
    try:
        if shape is Shape.BOOLEAN:
            return await generator.generate_boolean(request, provider_id)
        if shape is Shape.ARRAY:
            return await generator.generate_string_array(request, provider_id)
        if shape is Shape.OBJECT:
            return await generator.generate_structured_object(request, provider_id)
        if shape is Shape.DECISION:
            return await generator.generate_should_respond(request, provider_id)
        return await generator.generate_text(request, provider_id)
    finally:
        await runtime.aclose()


@app.command()
def generate(
    prompt: str = typer.Argument(..., help="Prompt text, or '-' to read it from stdin."),
    provider: Optional[str] = typer.Option(None, "--provider", "-p", help="Provider id; defaults to GEN_PROVIDER."),
    model_class: ModelClass = typer.Option(ModelClass.SMALL, "--model-class", "-m", case_sensitive=False),
    shape: Shape = typer.Option(Shape.TEXT, "--shape", "-s", case_sensitive=False),
    system: Optional[str] = typer.Option(None, "--system", help="System prompt for this request."),
) -> None:
    """Run one generation and print the result."""
    config = _load_config()
    context = _read_prompt(prompt)
    if not context.strip():
        typer.secho("Prompt is empty", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2)

    try:
        runtime = GenerationRuntime(config=config)
        request = GenerationRequest(context=context, model_class=model_class, system_prompt=system)
        result = asyncio.run(_generate(runtime, request, provider or config.provider, shape))
    except ConfigError as exc:
        typer.secho(f"Configuration error: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2) from exc
    except (ProviderError, RetriesExhausted) as exc:
        typer.secho(f"Generation failed: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc

    typer.echo(_render(result))


@app.command()
def providers() -> None:
    """List registered providers and their model mapping."""
    config = _load_config()
    try:
        registry = config.build_registry()
    except ConfigError as exc:
        typer.secho(f"Configuration error: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2) from exc
    for profile in registry:
        marker = "*" if profile.provider_id == config.provider else " "
        typer.echo(f"{marker} {_describe(profile)}")


@app.command()
def trim(
    prompt: str = typer.Argument(..., help="Context text, or '-' to read it from stdin."),
    max_tokens: int = typer.Option(..., "--max-tokens", "-n"),
    tokenizer: str = typer.Option(DEFAULT_TOKENIZER, "--tokenizer", "-t"),
) -> None:
    """Print the context trimmed to its most recent ``max_tokens`` tokens."""
    try:
        typer.echo(trim_tokens(_read_prompt(prompt), max_tokens, tokenizer))
    except ConfigError as exc:
        typer.secho(f"Configuration error: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2) from exc


def main() -> None:
    """Entry point for console script."""
    logging.basicConfig(level=logging.WARNING, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    app()


if __name__ == "__main__":
    main()
