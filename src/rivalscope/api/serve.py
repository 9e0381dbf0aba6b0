"""Uvicorn server launcher.

Console scripts must point to a callable, not an ASGI app object.
"""

from __future__ import annotations

from typing import Annotated

import typer
import uvicorn


def serve(
    host: Annotated[str, typer.Option(help="Bind host")] = "0.0.0.0",
    port: Annotated[int, typer.Option(help="Bind port")] = 8000,
    reload: Annotated[bool, typer.Option(help="Enable auto-reload (dev)")] = False,
) -> None:
    """Start the Rivalscope API server."""

    uvicorn.run(
        "rivalscope.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level="info",
    )


def main() -> None:
    typer.run(serve)


if __name__ == "__main__":
    main()
