"""Package entry point for ``python -m meet_assistant``."""

from meet_assistant.cli import main

if __name__ == "__main__":
    main()
