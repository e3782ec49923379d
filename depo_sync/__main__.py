"""Package entry point for ``python -m depo_sync``.

WHY: Operators run the synchronizer as ``python -m depo_sync lines
transcript.txt --words words.json`` without installing a console script.
Python's ``-m`` flag looks for ``__main__.py`` inside the package and
executes it.

RULES:
- This file must exist for ``python -m depo_sync`` to work
- All argument handling lives in depo_sync.cli
"""

if __name__ == "__main__":
    from depo_sync.cli import main
    main()
