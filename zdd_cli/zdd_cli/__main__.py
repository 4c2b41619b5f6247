"""Entry point for `python -m zdd_cli` and the `zdd` console script."""

from __future__ import annotations

from zdd_cli.app import app


def main() -> None:
    app()


if __name__ == "__main__":
    main()
