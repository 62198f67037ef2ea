"""Entry point for the trailer TestRail utility.

Loads environment variables from ``.env`` before the configuration is read,
then dispatches to the ``upload``, ``download``, ``prune`` or ``migrate``
command.
"""
from dotenv import load_dotenv

# Load environment variables first, before any other imports
load_dotenv()

from trailer.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
