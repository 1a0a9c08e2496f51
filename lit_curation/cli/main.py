# lit_curation/cli/main.py

from __future__ import annotations

import typer

from lit_curation.cli import pipeline_cli

app = typer.Typer(help="CLI tools for the literature curation pipeline.")

app.add_typer(pipeline_cli.app, name="pipeline")


@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind."),
    port: int = typer.Option(8000, "--port", "-p", help="Port to listen on."),
):
    """
    Serve the HTTP API (one in-memory session per process).
    """
    import uvicorn  # local import so the CLI works without the server extra

    uvicorn.run("lit_curation.web.app:app", host=host, port=port)


if __name__ == "__main__":
    app()
