"""
capstore CLI

Command-line client for a running capstore server.

Usage:
    capstore serve                       - Start the API server
    capstore put BUCKET KEY FILE         - Upload a file
    capstore get BUCKET KEY [-o FILE]    - Download an object
    capstore url BUCKET KEY              - Print a presigned download URL
"""

from __future__ import annotations

import mimetypes
import sys
from pathlib import Path

import click
import httpx
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from capstore import __version__

load_dotenv()

console = Console(stderr=True)

DEFAULT_API = "http://localhost:8000"
STORAGE_PATH = "/api/v1/storage"


def _fail(message: str) -> None:
    console.print(f"[red]✗ {message}[/red]")
    sys.exit(1)


def _absolute(api: str, url: str) -> str:
    """Presigned URLs may be relative when the server has no PUBLIC_BASE_URL."""
    return url if url.startswith(("http://", "https://")) else f"{api}{url}"


def _error_message(response: httpx.Response) -> str:
    try:
        return response.json().get("error") or response.text
    except ValueError:
        return response.text


def _request_download_url(api: str, token: str, bucket: str, key: str) -> str:
    response = httpx.get(
        f"{api}{STORAGE_PATH}/objects",
        params={"bucket": bucket, "key": key},
        headers={"Authorization": f"Bearer {token}"},
        timeout=30.0,
    )
    if response.status_code != 200:
        _fail(f"{response.status_code}: {_error_message(response)}")
    return _absolute(api, response.json()["downloadUrl"])


def _iter_file(path: Path, chunk_size: int = 64 * 1024):
    with path.open("rb") as f:
        while chunk := f.read(chunk_size):
            yield chunk


@click.group()
@click.version_option(version=__version__, prog_name="capstore")
@click.option(
    "--api",
    envvar="CAPSTORE_API_URL",
    default=DEFAULT_API,
    show_default=True,
    help="Base URL of the capstore server",
)
@click.option(
    "--token",
    envvar="CAPSTORE_TOKEN",
    default=None,
    help="Bearer access token (or CAPSTORE_TOKEN)",
)
@click.pass_context
def main(ctx: click.Context, api: str, token: str | None):
    """capstore - blob storage behind signed, short-lived URLs."""
    ctx.ensure_object(dict)
    ctx.obj["api"] = api.rstrip("/")
    ctx.obj["token"] = token


def _require_token(ctx: click.Context) -> str:
    token = ctx.obj.get("token")
    if not token:
        _fail("No access token. Pass --token or set CAPSTORE_TOKEN.")
    return token


@main.command()
@click.argument("bucket")
@click.argument("key")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--mime-type", default=None, help="Content type (guessed from FILE if omitted)")
@click.pass_context
def put(ctx: click.Context, bucket: str, key: str, file: Path, mime_type: str | None):
    """Upload FILE as BUCKET/KEY."""
    api = ctx.obj["api"]
    token = _require_token(ctx)
    mime_type = mime_type or mimetypes.guess_type(file.name)[0] or "application/octet-stream"

    try:
        response = httpx.post(
            f"{api}{STORAGE_PATH}/init-upload",
            json={"bucket": bucket, "key": key, "mimeType": mime_type},
            headers={"Authorization": f"Bearer {token}"},
            timeout=30.0,
        )
        if response.status_code != 201:
            _fail(f"{response.status_code}: {_error_message(response)}")

        upload_url = _absolute(api, response.json()["presignedUrl"])
        response = httpx.put(upload_url, content=_iter_file(file), timeout=None)
        if response.status_code != 200:
            _fail(f"Upload failed ({response.status_code}): {_error_message(response)}")
    except httpx.HTTPError as e:
        _fail(f"Could not reach {api}: {e}")

    obj = response.json()
    table = Table(title=f"{bucket}/{key}")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    for field in ("status", "size", "mimeType", "createdAt"):
        table.add_row(field, str(obj.get(field)))
    console.print(table)


@main.command()
@click.argument("bucket")
@click.argument("key")
@click.option(
    "-o",
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write to this file instead of stdout",
)
@click.pass_context
def get(ctx: click.Context, bucket: str, key: str, output: Path | None):
    """Download BUCKET/KEY."""
    api = ctx.obj["api"]
    token = _require_token(ctx)

    try:
        download_url = _request_download_url(api, token, bucket, key)
        with httpx.stream("GET", download_url, timeout=None) as response:
            if response.status_code != 200:
                response.read()
                _fail(f"Download failed ({response.status_code}): {_error_message(response)}")

            if output is None:
                for chunk in response.iter_bytes():
                    sys.stdout.buffer.write(chunk)
                sys.stdout.buffer.flush()
            else:
                with output.open("wb") as f:
                    for chunk in response.iter_bytes():
                        f.write(chunk)
                console.print(f"[green]✓[/green] Saved {bucket}/{key} to {output}")
    except httpx.HTTPError as e:
        _fail(f"Could not reach {api}: {e}")


@main.command()
@click.argument("bucket")
@click.argument("key")
@click.pass_context
def url(ctx: click.Context, bucket: str, key: str):
    """Print a presigned download URL for BUCKET/KEY."""
    api = ctx.obj["api"]
    token = _require_token(ctx)
    try:
        click.echo(_request_download_url(api, token, bucket, key))
    except httpx.HTTPError as e:
        _fail(f"Could not reach {api}: {e}")


@main.command()
@click.option("--host", default="127.0.0.1", show_default=True, help="Interface to bind")
@click.option("--port", default=8000, show_default=True, help="Port to run server on")
@click.option("--reload", is_flag=True, help="Reload on code changes")
def serve(host: str, port: int, reload: bool):
    """Start the capstore API server."""
    import uvicorn

    console.print(f"[cyan]capstore v{__version__}[/cyan] on http://{host}:{port}")
    uvicorn.run("capstore.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    main()
