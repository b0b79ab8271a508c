import sys

from bitsentinel.cli import main

sys.exit(main())
