"""
CausalGuard CLI entry point.

Usage:
    python -m causalguard.cli oracle
    python -m causalguard.cli gate --text "..."
    python -m causalguard.cli identify graph.json --treatment X --outcome Y
    python -m causalguard.cli lifecycle hypotheses.json
    python -m causalguard.cli novelty batch.json
"""

import sys
from .main import main

if __name__ == "__main__":
    sys.exit(main())
