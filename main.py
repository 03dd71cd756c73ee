"""arzlive - Entry Point.

Usage:
    python main.py poll
    python main.py poll --rial
    python main.py watch --interval 60
    python main.py history usd --last 20
    python main.py digest
"""

from arzlive.cli.market import app

if __name__ == "__main__":
    app()
