import sys

from pyrecorder.cli import main

sys.exit(main())
