import sys

from assignment_sync.cli import main


sys.exit(main())
