import sys

from buff.cli import main

sys.exit(main())
