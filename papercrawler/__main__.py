"""Entry point for running papercrawler as a module or installed script.

Usage:
    papercrawler / python -m papercrawler         → HTTP API (uvicorn)
    papercrawler <command> ... / python -m papercrawler <command> ... → CLI
"""

import sys

import uvicorn


def run() -> None:
    """Entry point: no args → API server, else → CLI."""
    if len(sys.argv) == 1:
        from papercrawler.config import Settings
        from papercrawler.logging_setup import configure_logging

        settings = Settings.load()
        configure_logging(settings.log_level)
        uvicorn.run("papercrawler.api.app:app", host=settings.host, port=settings.port)
    else:
        from papercrawler.cli import main

        main()


if __name__ == "__main__":
    run()
