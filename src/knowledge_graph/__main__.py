"""
Entry point when invoked as: python -m src.knowledge_graph
"""

import sys

from src.knowledge_graph.cli import main

if __name__ == "__main__":
    sys.exit(main())
