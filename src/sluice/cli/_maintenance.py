"""``sluice version`` and ``sluice sweep``: offline cache maintenance.

Both open the app's cache storage outside the server, do one piece of
generation bookkeeping, print the outcome, and close the storage.
"""

import argparse
import sys
from collections.abc import Awaitable, Callable

import anyio

from sluice.app import App
from sluice.cli._resolve import load_app
from sluice.errors import ManifestError, TransientNetworkFailure


def _run_with_storage(app: App, action: Callable[[App], Awaitable[None]]) -> None:
    async def _main() -> None:
        context = app.context
        await context.storage.connect()
        try:
            await action(app)
        finally:
            aclose = getattr(context.fetcher, "aclose", None)
            if aclose is not None:
                await aclose()
            await context.storage.close()

    try:
        anyio.run(_main)
    except (ManifestError, TransientNetworkFailure) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc


async def _version(app: App) -> None:
    resolution = await app.context.caches.resolve_version()
    print(f"version: {resolution.version}")
    if resolution.changed:
        print(f"previous: {resolution.previous or '(none)'}")
    for name in resolution.deleted:
        print(f"deleted: {name}")


async def _sweep(app: App) -> None:
    caches = app.context.caches
    await caches.ensure_version()
    deleted = await caches.sweep()
    print(f"version: {caches.version}")
    if not deleted:
        print("nothing to delete")
    for name in deleted:
        print(f"deleted: {name}")


def run_version(args: argparse.Namespace) -> None:
    """Fetch the version manifest, rotating generations when it changed."""
    _run_with_storage(load_app(args), _version)


def run_sweep(args: argparse.Namespace) -> None:
    """Delete every generation outside the current version's whitelist."""
    _run_with_storage(load_app(args), _sweep)
