"""Entry point for `python -m schemadiff.cli` and the `schemadiff` console script."""

from __future__ import annotations

from schemadiff.cli.app import app


def main() -> None:
    app()


if __name__ == "__main__":
    main()
