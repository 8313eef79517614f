"""Allow running git-up as ``python -m gitup``."""

from gitup.cli import cli_main

if __name__ == "__main__":
    cli_main()
