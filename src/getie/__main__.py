"""Main entry point for ``python -m getie``."""

from getie.cli.main import main


if __name__ == "__main__":
    main()
