import sys

from coursecore.cli import main

sys.exit(main())
