import sys

from dimiplan.migration.cli import main

sys.exit(main())
