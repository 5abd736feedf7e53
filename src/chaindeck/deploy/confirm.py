"""Confirmation capabilities for gating deployments on a human decision."""

from __future__ import annotations

import asyncio

import click


async def prompt_confirm(message: str) -> bool:
    """Ask on the terminal whether to proceed.

    The blocking prompt runs in a worker thread so other deployments on the
    event loop keep making progress while it waits.
    """
    return await asyncio.to_thread(click.confirm, message, default=False)


async def always_confirm(message: str) -> bool:
    """Approve every deployment without asking."""
    return True
