"""CLI entry point for the QAAI API server."""

import argparse
import os


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="qaai-server",
        description="QAAI API server: job queue and test reliability analytics",
    )
    parser.add_argument("--host", default=None, help="Bind host (default: QAAI_HOST or 0.0.0.0)")
    parser.add_argument("--port", type=int, default=None, help="Bind port (default: QAAI_PORT or 8080)")
    parser.add_argument(
        "--local",
        action="store_true",
        help="Local dev mode: SQLite database with auto-created tables",
    )
    args = parser.parse_args(argv)

    if args.local:
        os.environ["QAAI_LOCAL_MODE"] = "1"

    import uvicorn

    from qaai.config import Settings

    settings = Settings()
    uvicorn.run("qaai.main:app", host=args.host or settings.host, port=args.port or settings.port)


if __name__ == "__main__":
    main()
