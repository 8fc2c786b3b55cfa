"""Allow ``python -m buildsift``."""

from buildsift.cli.main import main

if __name__ == "__main__":
    main()
