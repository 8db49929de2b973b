#!/usr/bin/env python3
"""
Quiz Flow Editor - command line entry point

Imports the normalized quiz documents into a laid out flow graph, re-runs the
layout on an edited graph, exports a graph back to documents, or serves the
editor HTTP API.
"""

import sys

from quizflow.cli import main


if __name__ == "__main__":
    sys.exit(main())
