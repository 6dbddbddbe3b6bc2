"""Allow ``python -m mongolock``."""

from mongolock.cli import main

if __name__ == "__main__":
    main()
