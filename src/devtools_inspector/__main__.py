"""Entry point for ``python -m devtools_inspector``."""

from .cli import main

if __name__ == "__main__":
    main()
