"""Allow running as ``python -m gqlproxy``."""

from gqlproxy.cli import main

if __name__ == "__main__":
    main()
