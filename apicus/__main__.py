from __future__ import annotations

import argparse
from pathlib import Path
from typing import Sequence

import uvicorn

from apicus.main import create_app

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8000


def main(argv: Sequence[str] | None = None) -> None:
    """Serve the stack cost API over HTTP."""
    parser = argparse.ArgumentParser(prog="apicus")
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    parser.add_argument(
        "--catalog-root",
        type=Path,
        default=None,
        help="directory holding catalog/ and schema/",
    )
    args = parser.parse_args(argv)

    uvicorn.run(
        create_app(catalog_root=args.catalog_root),
        host=args.host,
        port=args.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
