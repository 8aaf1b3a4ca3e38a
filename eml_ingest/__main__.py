"""Entry point for ``python -m eml_ingest``."""

from __future__ import annotations

from .cli import app


def main() -> None:
    app(prog_name="eml-ingest")


if __name__ == "__main__":
    main()
