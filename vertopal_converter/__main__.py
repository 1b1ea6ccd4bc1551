"""Package entry point for ``python -m vertopal_converter``."""

from vertopal_converter.cli import main

if __name__ == "__main__":
    main()
