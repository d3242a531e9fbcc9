"""
Module entry point for: python -m mathlab

Allows running the CLI directly as a module:
    python -m mathlab ingest <pdf_path> -o questions.json
    python -m mathlab take questions.json
"""

from .cli import cli


def main():
    cli()


if __name__ == "__main__":
    main()
