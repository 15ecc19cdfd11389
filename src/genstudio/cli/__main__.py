"""CLI entry point for genstudio.cli module.

Enables execution via: python -m genstudio.cli
"""

from genstudio.cli.studio import main

if __name__ == "__main__":
    main()
