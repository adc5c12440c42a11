"""
Entry point for running compl as a module.

Usage:
    python -m compl repl --filetype python
"""

from compl.cli.commands import main

if __name__ == '__main__':
    main()
