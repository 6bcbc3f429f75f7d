"""Entrypoint for `python -m MaskBrew`."""

from .cli import main

if __name__ == "__main__":
    main()
