"""Run clipstash from a source checkout"""

import sys

from clipstash.app import main


if __name__ == "__main__":
    sys.exit(main())
