"""Package entry point for ``python -m autocaption``."""

import sys

if __name__ == "__main__":
    from autocaption.cli import main
    sys.exit(main())
