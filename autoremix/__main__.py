"""Package entry point for ``python -m autoremix``.

WHY: Python's ``-m`` flag looks for ``__main__.py`` inside the package;
this delegates to the CLI so ``python -m autoremix SOURCE`` behaves like
the ``autoremix`` console script.
"""

from autoremix.cli import main

if __name__ == "__main__":
    main()
