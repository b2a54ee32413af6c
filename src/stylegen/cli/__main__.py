"""CLI entry point for stylegen.cli module.

Enables execution via: python -m stylegen.cli
"""

from stylegen.cli.regenerate import main

if __name__ == "__main__":
    main()
