from __future__ import annotations

import asyncio
import logging

import click

from .api import DEFAULT_BASE_URL, ApiClient, ApiError
from .search import DOMAIN_FIELDS, SearchEngine, parse_search_input
from .sync import POLL_INTERVAL, RowTable, TableSync


def _label(domain: str, row: dict) -> str:
    fields = DOMAIN_FIELDS[domain][1:]
    return f"#{row.get('id')} " + " ".join(str(row.get(f) or "") for f in fields)


class EchoTable(RowTable):
    def __init__(self, domain: str) -> None:
        super().__init__()
        self.domain = domain

    def add_row(self, row: dict) -> None:
        super().add_row(row)
        click.echo(f"+ {_label(self.domain, row)}")

    def remove_row(self, key) -> None:
        super().remove_row(key)
        click.echo(f"- #{key}")

    def update_row(self, key, row: dict) -> None:
        super().update_row(key, row)
        click.echo(f"~ {_label(self.domain, row)}")


@click.group()
@click.option("--base-url", envvar="VETCLINIC_API_URL", default=DEFAULT_BASE_URL, show_default=True)
@click.option("--timeout", default=10.0, show_default=True, help="Seconds per request.")
@click.option("--retries", default=2, show_default=True, help="Extra attempts on network errors.")
@click.option("-v", "--verbose", is_flag=True)
@click.pass_context
def main(ctx, base_url: str, timeout: float, retries: int, verbose: bool):
    """Search and watch clinic records over the HTTP API."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = {"base_url": base_url, "timeout": timeout, "retries": retries}


def _client(ctx) -> ApiClient:
    return ApiClient(ctx.obj["base_url"], timeout=ctx.obj["timeout"], retries=ctx.obj["retries"])


@main.command()
@click.argument("query")
@click.option("--domain", type=click.Choice(["any", *DOMAIN_FIELDS]), default="any", show_default=True)
@click.option("--page", default=1, show_default=True)
@click.option("--per-page", default=10, show_default=True)
@click.pass_context
def search(ctx, query: str, domain: str, page: int, per_page: int):
    """Search records; quote phrases, use #ID for an id filter."""
    parsed = parse_search_input(query, domain=domain, page=page, per_page=per_page)

    async def run():
        async with _client(ctx) as client:
            return await SearchEngine(client).search(parsed)

    try:
        pages = asyncio.run(run())
    except ApiError as exc:
        raise click.ClickException(exc.message) from exc

    for result in pages:
        click.echo(f"[{result.domain}] {result.total} match(es), page {result.page}")
        for row in result.data:
            click.echo(f"  {_label(result.domain, row)}")


@main.command()
@click.argument("domain", type=click.Choice(list(DOMAIN_FIELDS)))
@click.option("--interval", envvar="VETCLINIC_POLL_INTERVAL", default=POLL_INTERVAL, show_default=True,
              help="Seconds between polls.")
@click.pass_context
def watch(ctx, domain: str, interval: float):
    """Print rows as they are added, removed or changed."""

    async def run():
        async with _client(ctx) as client:
            fetch = {
                "owners": client.list_owners,
                "pets": client.all_pets,
                "visits": client.all_visits,
            }[domain]
            sync = TableSync(fetch, EchoTable(domain), interval=interval)
            try:
                await sync.start()
            finally:
                await sync.stop()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        click.echo("stopped")


if __name__ == "__main__":
    main()
