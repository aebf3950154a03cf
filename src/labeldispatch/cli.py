import asyncio
import json
import logging
from pathlib import Path

import click
from tabulate import tabulate

from .adapters.base import ProviderAdapter
from .batch import dispatch_batch, dispatch_batch_settled
from .errors import DispatchError, UnknownProviderError
from .registry import get_registry
from .types import InputType, RequestOptions


def _get_adapter(provider_id: str) -> ProviderAdapter:
    try:
        return get_registry().resolve(provider_id)
    except UnknownProviderError as exc:
        raise click.BadParameter(exc.message, param_hint="'--provider'") from exc


def _run(coro):
    try:
        return asyncio.run(coro)
    except DispatchError as exc:
        raise click.ClickException(exc.message) from exc


def _dispatch_options(func):
    """Options shared by single and batch dispatch."""
    options = [
        click.option("--provider", "provider_id", required=True, help="Provider id (see `providers`)"),
        click.option("--prompt", default=None, help="System instruction"),
        click.option("--api-key", envvar="LABELDISPATCH_API_KEY", default=None, help="Provider API key"),
        click.option("--model", "model_id", default=None, help="Model id (default: provider default)"),
        click.option("--base-url", default=None, help="Endpoint override for self-hosted backends"),
        click.option(
            "--type",
            "input_type",
            type=click.Choice([t.value for t in InputType]),
            default=InputType.TEXT.value,
            help="Content type",
        ),
        click.option("--temperature", type=float, default=None, help="Sampling temperature"),
        click.option("--max-tokens", type=int, default=None, help="Max output tokens"),
        click.option("--timeout", type=float, default=None, help="Seconds per backend call"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _dispatch_kwargs(
    prompt, api_key, model_id, base_url, input_type, temperature, max_tokens, timeout
) -> dict:
    kwargs = {
        "prompt": prompt,
        "api_key": api_key,
        "model_id": model_id,
        "base_url": base_url,
        "input_type": InputType(input_type),
        "options": RequestOptions(temperature=temperature, max_tokens=max_tokens),
    }
    # Omitted --timeout keeps the configured default.
    if timeout is not None:
        kwargs["timeout"] = timeout
    return kwargs


@click.group()
@click.option("-v", "--verbose", is_flag=True, default=False, help="Enable debug logging")
def cli(verbose: bool):
    """labeldispatch - route annotation requests to AI providers"""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command("providers")
@click.option("--models", "show_models", is_flag=True, default=False, help="List each provider's models")
def providers_cmd(show_models: bool):
    """List registered providers."""
    registry = get_registry()
    if show_models:
        rows = [
            [descriptor.id, model.id, model.name, model.description]
            for descriptor in registry.descriptors()
            for model in descriptor.models
        ]
        click.echo(tabulate(rows, headers=["Provider", "Model", "Name", "Description"]))
        return

    rows = [
        [d.id, d.name, "yes" if d.requires_api_key else "no", len(d.models), d.description]
        for d in registry.descriptors()
    ]
    click.echo(tabulate(rows, headers=["Provider", "Name", "API key", "Models", "Description"]))


@cli.command("models")
@click.option("--provider", "provider_id", required=True, help="Provider id")
@click.option("--api-key", envvar="LABELDISPATCH_API_KEY", default=None, help="Provider API key")
@click.option("--base-url", default=None, help="Endpoint override")
def models_cmd(provider_id: str, api_key: str | None, base_url: str | None):
    """List the models a provider offers."""
    adapter = _get_adapter(provider_id)
    models = _run(adapter.list_models(api_key=api_key, base_url=base_url))
    if not models:
        click.echo("No models found.")
        return
    click.echo(tabulate([[m.id, m.name] for m in models], headers=["Model", "Name"]))


@cli.command("dispatch")
@click.option("--content", required=True, help="Text, image URL or data URL")
@_dispatch_options
def dispatch_cmd(content: str, provider_id: str, **kwargs):
    """Send one item to a provider and print the completion."""
    adapter = _get_adapter(provider_id)
    text = _run(adapter.dispatch(content, **_dispatch_kwargs(**kwargs)))
    click.echo(text)


@cli.command("batch")
@click.option(
    "--input",
    "input_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="File with one content item per line",
)
@click.option("--out", "out_path", default=None, help="Write JSON lines here instead of stdout")
@click.option(
    "--partial",
    is_flag=True,
    default=False,
    help="Report per-item errors instead of failing the whole batch",
)
@_dispatch_options
def batch_cmd(input_path: str, out_path: str | None, partial: bool, provider_id: str, **kwargs):
    """Dispatch every line of a file concurrently."""
    adapter = _get_adapter(provider_id)
    contents = [
        line.strip() for line in Path(input_path).read_text().splitlines() if line.strip()
    ]
    dispatch_kwargs = _dispatch_kwargs(**kwargs)

    records: list[dict] = []
    failed = 0
    if partial:
        for item in _run(dispatch_batch_settled(adapter, contents, **dispatch_kwargs)):
            record = {"index": item.index, "content": item.content}
            if item.ok:
                record["text"] = item.text
            else:
                failed += 1
                record["error"] = str(item.error)
            records.append(record)
    else:
        texts = _run(dispatch_batch(adapter, contents, **dispatch_kwargs))
        records = [
            {"index": index, "content": content, "text": text}
            for index, (content, text) in enumerate(zip(contents, texts))
        ]

    lines = "\n".join(json.dumps(record, ensure_ascii=False) for record in records)
    if out_path:
        Path(out_path).write_text(lines + "\n" if lines else "")
        click.echo(f"Wrote {len(records)} results to {out_path} ({failed} failed)")
    else:
        click.echo(lines)


if __name__ == "__main__":
    cli()
