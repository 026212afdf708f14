"""
Entry point for running Dialog Ledger as a module.

This allows users to run: python -m dialog_ledger
"""

from dialog_ledger.cli.main import app

if __name__ == "__main__":
    app()
