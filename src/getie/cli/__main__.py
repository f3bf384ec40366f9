"""Allow ``python -m getie.cli``."""

from getie.cli.main import main


if __name__ == "__main__":
    main()
