import sys

from galleryharvest.cli import main

sys.exit(main())
