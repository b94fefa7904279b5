"""Allow running the validator as `python -m alignkit`."""

from alignkit.validation.cli import main

if __name__ == "__main__":
    main()
