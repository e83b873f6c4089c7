import sys

from quizeval.cli import main

sys.exit(main())
