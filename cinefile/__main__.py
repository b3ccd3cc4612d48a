"""Module entry point. Allows python -m cinefile."""

from cinefile.etl.pipeline.cli import main

if __name__ == "__main__":
    main()
