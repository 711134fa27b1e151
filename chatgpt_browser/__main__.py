"""
Allows ``python -m chatgpt_browser``.
"""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
