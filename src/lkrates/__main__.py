# src/lkrates/__main__.py
"""Allow `python -m lkrates`."""

from lkrates.app import main

if __name__ == "__main__":
    main()
