"""Enable running lvbind as a module: python -m lvbind"""

import sys

from lvbind import (
    cli,
)

if __name__ == "__main__":
    # pylint: disable=no-value-for-parameter
    sys.exit(cli())
