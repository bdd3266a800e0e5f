"""Thin shim for IDEs and direct execution."""

from firehose.cli import main

if __name__ == "__main__":
    import sys

    # Default to debug logging when run directly, unless a level was given.
    if not any(arg.startswith("--log-level") for arg in sys.argv):
        sys.argv.extend(["--log-level", "DEBUG"])

    sys.exit(main())
