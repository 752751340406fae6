"""Allow ``python -m media_browser``."""

import sys

from media_browser.cli import main

if __name__ == "__main__":
    sys.exit(main())
